"""Tests for modelmesh.kernel.orchestration.metering."""

import pytest

from modelmesh.kernel.domain.execution import TokenUsage
from modelmesh.kernel.domain.models import ModelType
from modelmesh.kernel.orchestration.metering import count_units, estimate_cost, reported_usage


class TestReportedUsage:
    def test_prompt_completion_spelling(self) -> None:
        usage = reported_usage({"usage": {"prompt_tokens": 3, "completion_tokens": 5}})
        assert usage == TokenUsage(input=3, output=5, total=8)

    def test_total_only(self) -> None:
        usage = reported_usage({"usage": {"input_tokens": 4, "total_tokens": 10}})
        assert usage == TokenUsage(input=4, output=6, total=10)

    @pytest.mark.parametrize("output", [None, "text", {"usage": "n/a"}, {"usage": {}}])
    def test_no_usage(self, output: object) -> None:
        assert reported_usage(output) is None


class TestCountUnits:
    def test_llm_output_is_estimated_from_characters(self, make_model) -> None:
        model = make_model("llm", model_type=ModelType.LLM, cost_per_unit=0.01)

        usage = count_units(model, "x" * 10)

        assert usage == TokenUsage(output=3, total=3)
        assert estimate_cost(model, usage) == pytest.approx(0.03)

    def test_llm_prefers_reported_usage(self, make_model) -> None:
        model = make_model("llm", model_type=ModelType.LLM)
        usage = count_units(model, {"text": "long answer", "usage": {"output_tokens": 1}})
        assert usage is not None
        assert usage.output == 1

    def test_other_types_count_zero_without_usage(self, make_model) -> None:
        model = make_model("tab", model_type=ModelType.TABULAR, cost_per_unit=2.0)

        usage = count_units(model, {"prediction": 1})

        assert usage is None
        assert estimate_cost(model, usage) == 0.0

    def test_cost_is_none_without_rate(self, make_model) -> None:
        model = make_model("free", model_type=ModelType.LLM)
        assert estimate_cost(model, TokenUsage(output=100, total=100)) is None

    def test_each_model_uses_its_own_rate(self, make_model) -> None:
        cheap = make_model("cheap", cost_per_unit=0.001)
        pricey = make_model("pricey", cost_per_unit=0.1)
        usage = TokenUsage(output=1000, total=1000)

        assert estimate_cost(cheap, usage) == pytest.approx(1.0)
        assert estimate_cost(pricey, usage) == pytest.approx(100.0)
