"""Domain objects: model metadata, pipeline graphs, execution records and plans."""

from modelmesh.kernel.domain.dag import ExecutionPlan, detect_cycle, resolve_plan
from modelmesh.kernel.domain.execution import (
    ErrorInfo,
    ExecutionRecord,
    ExecutionSummary,
    Invocation,
    InvocationStatus,
    RunStatus,
    TokenUsage,
)
from modelmesh.kernel.domain.models import (
    ModelMetadata,
    ModelStatus,
    ModelType,
    SecurityPolicy,
    new_model_id,
)
from modelmesh.kernel.domain.pipeline import PipelineEdge, PipelineGraph, PipelineNode

__all__ = [
    "ErrorInfo",
    "ExecutionPlan",
    "ExecutionRecord",
    "ExecutionSummary",
    "Invocation",
    "InvocationStatus",
    "ModelMetadata",
    "ModelStatus",
    "ModelType",
    "PipelineEdge",
    "PipelineGraph",
    "PipelineNode",
    "RunStatus",
    "SecurityPolicy",
    "TokenUsage",
    "detect_cycle",
    "new_model_id",
    "resolve_plan",
]
