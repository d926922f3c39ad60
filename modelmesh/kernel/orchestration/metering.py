"""Output-unit counting and per-model cost estimation.

Cost is always ``model.cost_per_unit * output units``: each model is priced
at its own declared rate. Unit counting depends on the model type; models
that report usage in their response are trusted, LLM outputs without usage
are estimated at four characters per token, everything else counts zero.
"""

from __future__ import annotations

import json
import math
from collections.abc import Callable, Mapping
from typing import Any

from modelmesh.kernel.domain.execution import TokenUsage
from modelmesh.kernel.domain.models import ModelMetadata, ModelType

CHARS_PER_TOKEN = 4

UnitCounter = Callable[[Any], TokenUsage | None]


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return int(value)


def reported_usage(output: Any) -> TokenUsage | None:
    """Read a ``usage`` mapping from a model response, if it reports one.

    Understands ``input_tokens``/``output_tokens`` and the
    ``prompt_tokens``/``completion_tokens`` spelling, plus ``total_tokens``.

    Examples
    --------
    >>> reported_usage({"usage": {"prompt_tokens": 3, "completion_tokens": 5}})
    TokenUsage(input=3, output=5, total=8)
    >>> reported_usage({"text": "hi"}) is None
    True
    """
    if not isinstance(output, Mapping):
        return None
    usage = output.get("usage")
    if not isinstance(usage, Mapping):
        return None

    input_units = _as_int(usage.get("input_tokens", usage.get("prompt_tokens"))) or 0
    output_units = _as_int(usage.get("output_tokens", usage.get("completion_tokens")))
    total = _as_int(usage.get("total_tokens"))
    if output_units is None and total is None:
        return None
    if output_units is None:
        output_units = max((total or 0) - input_units, 0)
    if total is None:
        total = input_units + output_units
    return TokenUsage(input=input_units, output=output_units, total=total)


def _estimate_text_tokens(output: Any) -> TokenUsage | None:
    usage = reported_usage(output)
    if usage is not None:
        return usage
    text = output if isinstance(output, str) else json.dumps(output, separators=(",", ":"))
    units = math.ceil(len(text) / CHARS_PER_TOKEN)
    return TokenUsage(output=units, total=units)


UNIT_COUNTERS: dict[ModelType, UnitCounter] = {
    ModelType.LLM: _estimate_text_tokens,
}


def count_units(model: ModelMetadata, output: Any) -> TokenUsage | None:
    """Count output units for ``output`` according to ``model.model_type``."""
    counter = UNIT_COUNTERS.get(model.model_type, reported_usage)
    return counter(output)


def estimate_cost(model: ModelMetadata, usage: TokenUsage | None) -> float | None:
    """Return ``cost_per_unit * output units``, or None if the model has no rate."""
    if model.cost_per_unit is None:
        return None
    units = usage.output if usage is not None else 0
    return model.cost_per_unit * units
