"""Core exception hierarchy for modelmesh.

All modelmesh exceptions inherit from ModelMeshError for easy exception
handling. Errors that end up inside an execution record are also described
by an :class:`ErrorKind`, so analytics can classify failures without parsing
messages.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from modelmesh.kernel.domain.execution import ErrorInfo


class ErrorKind(StrEnum):
    """Closed set of structured failure kinds recorded in execution records."""

    MODEL_NOT_FOUND = "model_not_found"
    VALIDATION_FAILED = "validation_failed"
    OUTPUT_INVALID = "output_invalid"
    TIMEOUT = "timeout"
    UPSTREAM_ERROR = "upstream_error"
    CYCLE = "cycle"
    DANGLING_EDGE = "dangling_edge"
    DUPLICATE_NODE = "duplicate_node"
    CANCELLED = "cancelled"
    INTERNAL_ERROR = "internal_error"


# ============================================================================
# Base Exception
# ============================================================================


class ModelMeshError(Exception):
    """Base exception for all modelmesh errors.

    Catch this to handle all modelmesh-specific errors.
    """

    pass


# ============================================================================
# Configuration & Validation Errors
# ============================================================================


class ConfigurationError(ModelMeshError):
    """Raised when configuration is invalid or missing.

    Examples
    --------
    Example usage::

        raise ConfigurationError("catalog.yaml", "'models' must be a list")
    """

    def __init__(self, component: str, reason: str) -> None:
        super().__init__(f"Configuration error in '{component}': {reason}")
        self.component = component
        self.reason = reason


class ValidationError(ModelMeshError):
    """Raised when a field value fails validation.

    Examples
    --------
    Example usage::

        raise ValidationError("max_retries", "must be >= 0", value=-1)
    """

    def __init__(self, field: str, constraint: str, value: object = None) -> None:
        if value is not None:
            msg = f"Validation failed for '{field}': {constraint} (got {value!r})"
        else:
            msg = f"Validation failed for '{field}': {constraint}"
        super().__init__(msg)
        self.field = field
        self.constraint = constraint
        self.value = value


class SchemaValidationError(ModelMeshError):
    """Raised when a JSON value does not conform to a declared schema.

    Attributes
    ----------
    path : str
        JSON-pointer-like location of the violation (``$`` is the root)
    reason : str
        Human readable description of the violated constraint
    """

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


# ============================================================================
# Resource Errors
# ============================================================================


class ResourceNotFoundError(ModelMeshError):
    """Raised when a required resource cannot be found."""

    def __init__(
        self, resource_type: str, resource_id: str, available: list[str] | None = None
    ) -> None:
        msg = f"{resource_type.title()} '{resource_id}' not found"
        if available:
            msg += f". Available: {', '.join(available[:5])}"
            if len(available) > 5:
                msg += f" ... and {len(available) - 5} more"
        super().__init__(msg)
        self.resource_type = resource_type
        self.resource_id = resource_id
        self.available = available


class ModelNotFoundError(ResourceNotFoundError):
    """Raised when a model identifier is unknown to the directory."""

    def __init__(self, model_id: str, available: list[str] | None = None) -> None:
        super().__init__("model", model_id, available)
        self.model_id = model_id


class DuplicateModelError(ModelMeshError):
    """Raised when registering a model whose identifier is already taken."""

    def __init__(self, model_id: str) -> None:
        super().__init__(f"Model '{model_id}' is already registered")
        self.model_id = model_id


# ============================================================================
# Invocation Errors
# ============================================================================


class InvocationError(ModelMeshError):
    """Raised for a failed single-model invocation.

    Carries the same structured :class:`ErrorInfo` that is written into the
    invocation record.
    """

    def __init__(self, error: ErrorInfo) -> None:
        super().__init__(f"{error.kind.value}: {error.detail}")
        self.error = error

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind


class InvocationTimeoutError(InvocationError):
    """The model did not answer in time or the connection failed."""


class UpstreamError(InvocationError):
    """The model answered with a non-2xx status code."""

    @property
    def status_code(self) -> int | None:
        return self.error.status_code


class OutputInvalidError(InvocationError):
    """The model answered 2xx but the body violates the output schema."""


class InputInvalidError(InvocationError):
    """The input payload violates the model's input schema."""


class HttpClientError(ModelMeshError):
    """Raised when an HTTP request fails with a non-2xx status code.

    Attributes
    ----------
    status_code : int
        The HTTP status code.
    body : Any
        The response body.
    """

    def __init__(self, status_code: int, body: object, message: str = "") -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message or f"HTTP {status_code}")


# ============================================================================
# Graph & Orchestration Errors
# ============================================================================


class GraphError(ModelMeshError):
    """Raised when a pipeline graph cannot be turned into an execution plan."""

    kind: ErrorKind = ErrorKind.CYCLE

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class CycleDetectedError(GraphError):
    """Raised when the graph contains a cycle."""

    kind = ErrorKind.CYCLE


class DanglingEdgeError(GraphError):
    """Raised when an edge references a node that does not exist."""

    kind = ErrorKind.DANGLING_EDGE


class DuplicateNodeError(GraphError):
    """Raised when two nodes share the same identifier."""

    kind = ErrorKind.DUPLICATE_NODE


class OrchestratorError(ModelMeshError):
    """Raised when the orchestrator itself is misused or misconfigured."""

    pass


class ExecutionStoreError(ModelMeshError):
    """Raised when an execution record cannot be persisted or read back."""

    pass


__all__ = [
    "ErrorKind",
    "ModelMeshError",
    "ConfigurationError",
    "ValidationError",
    "SchemaValidationError",
    "ResourceNotFoundError",
    "ModelNotFoundError",
    "DuplicateModelError",
    "InvocationError",
    "InvocationTimeoutError",
    "UpstreamError",
    "OutputInvalidError",
    "InputInvalidError",
    "HttpClientError",
    "GraphError",
    "CycleDetectedError",
    "DanglingEdgeError",
    "DuplicateNodeError",
    "OrchestratorError",
    "ExecutionStoreError",
]
