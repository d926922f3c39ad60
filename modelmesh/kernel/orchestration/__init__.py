"""Invocation and pipeline orchestration."""

from modelmesh.kernel.orchestration.invoker import Invoker
from modelmesh.kernel.orchestration.metering import count_units, estimate_cost
from modelmesh.kernel.orchestration.models import (
    InvocationOutcome,
    InvocationPolicy,
    InvocationResult,
)
from modelmesh.kernel.orchestration.orchestrator import PipelineOrchestrator

__all__ = [
    "InvocationOutcome",
    "InvocationPolicy",
    "InvocationResult",
    "Invoker",
    "PipelineOrchestrator",
    "count_units",
    "estimate_cost",
]
