"""modelmesh - Directory and pipeline orchestration for remote AI model endpoints.

Register models described by their I/O schemas, discover them by capability,
and execute single calls or multi-node pipelines with failure isolation,
retries, timeouts and complete execution records.

Examples
--------
Example usage::

    from modelmesh import (
        InMemoryModelDirectory, Invoker, PipelineOrchestrator, load_models, load_pipeline
    )

    directory = InMemoryModelDirectory(load_models("catalog.yaml"))
    orchestrator = PipelineOrchestrator(Invoker(directory))
    record = await orchestrator.execute(load_pipeline("triage.yaml"), {"text": "..."})
"""

from modelmesh.compiler import load_models, load_pipeline
from modelmesh.drivers import (
    HttpClientDriver,
    InMemoryExecutionStore,
    InMemoryModelDirectory,
    JsonlExecutionStore,
)
from modelmesh.kernel.config import ModelMeshConfig, load_config
from modelmesh.kernel.domain import (
    ErrorInfo,
    ExecutionPlan,
    ExecutionRecord,
    ExecutionSummary,
    Invocation,
    InvocationStatus,
    ModelMetadata,
    ModelStatus,
    ModelType,
    PipelineEdge,
    PipelineGraph,
    PipelineNode,
    RunStatus,
    SecurityPolicy,
    TokenUsage,
    resolve_plan,
)
from modelmesh.kernel.exceptions import (
    ConfigurationError,
    CycleDetectedError,
    DanglingEdgeError,
    DuplicateModelError,
    DuplicateNodeError,
    ErrorKind,
    GraphError,
    InvocationError,
    ModelMeshError,
    ModelNotFoundError,
)
from modelmesh.kernel.logging import configure_logging, get_logger
from modelmesh.kernel.orchestration import (
    InvocationOutcome,
    InvocationPolicy,
    InvocationResult,
    Invoker,
    PipelineOrchestrator,
)
from modelmesh.kernel.ports import ExecutionStore, ModelDirectory
from modelmesh.kernel.validation import find_violation, validate

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "CycleDetectedError",
    "DanglingEdgeError",
    "DuplicateModelError",
    "DuplicateNodeError",
    "ErrorInfo",
    "ErrorKind",
    "ExecutionPlan",
    "ExecutionRecord",
    "ExecutionStore",
    "ExecutionSummary",
    "GraphError",
    "HttpClientDriver",
    "InMemoryExecutionStore",
    "InMemoryModelDirectory",
    "Invocation",
    "InvocationError",
    "InvocationOutcome",
    "InvocationPolicy",
    "InvocationResult",
    "InvocationStatus",
    "Invoker",
    "JsonlExecutionStore",
    "ModelDirectory",
    "ModelMeshConfig",
    "ModelMeshError",
    "ModelMetadata",
    "ModelNotFoundError",
    "ModelStatus",
    "ModelType",
    "PipelineEdge",
    "PipelineGraph",
    "PipelineNode",
    "PipelineOrchestrator",
    "RunStatus",
    "SecurityPolicy",
    "TokenUsage",
    "configure_logging",
    "find_violation",
    "get_logger",
    "load_config",
    "load_models",
    "load_pipeline",
    "resolve_plan",
    "validate",
]
