"""Tests for modelmesh.kernel.orchestration.models."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from modelmesh.kernel.config.models import InvocationConfig
from modelmesh.kernel.orchestration import InvocationOutcome, InvocationPolicy


class TestInvocationPolicy:
    def test_defaults(self) -> None:
        policy = InvocationPolicy()

        assert policy.timeout_ms == 30000
        assert policy.max_retries == 2
        assert policy.backoff_base_ms == 500

    def test_exponential_backoff(self) -> None:
        policy = InvocationPolicy(backoff_base_ms=250)
        assert [policy.backoff_seconds(i) for i in range(3)] == [0.25, 0.5, 1.0]

    def test_with_overrides(self) -> None:
        policy = InvocationPolicy().with_overrides({"max_retries": 0, "timeout_ms": 100.0})

        assert policy.max_retries == 0
        assert policy.timeout_ms == 100
        assert policy.backoff_base_ms == 500

    def test_overrides_are_validated(self) -> None:
        with pytest.raises(PydanticValidationError):
            InvocationPolicy().with_overrides({"timeout_ms": 0})

    def test_from_config(self) -> None:
        config = InvocationConfig(timeout_ms=1000, max_retries=5, backoff_base_ms=10)
        assert InvocationPolicy.from_config(config) == InvocationPolicy(
            timeout_ms=1000, max_retries=5, backoff_base_ms=10
        )


@pytest.mark.parametrize(
    ("outcome", "retryable", "reached_model"),
    [
        (InvocationOutcome.SUCCESS, False, True),
        (InvocationOutcome.MODEL_NOT_FOUND, False, False),
        (InvocationOutcome.VALIDATION_FAILED, False, False),
        (InvocationOutcome.TIMEOUT, True, True),
        (InvocationOutcome.UPSTREAM_ERROR, True, True),
        (InvocationOutcome.OUTPUT_INVALID, False, True),
    ],
)
def test_outcome_classification(
    outcome: InvocationOutcome, retryable: bool, reached_model: bool
) -> None:
    assert outcome.retryable is retryable
    assert outcome.reached_model is reached_model
