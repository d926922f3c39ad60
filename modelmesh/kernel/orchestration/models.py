"""Data models used by the invoker and the pipeline orchestrator."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, JsonValue

from modelmesh.kernel.config.models import (
    DEFAULT_BACKOFF_BASE_MS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT_MS,
    InvocationConfig,
)
from modelmesh.kernel.domain.execution import (
    ErrorInfo,
    Invocation,
    InvocationStatus,
    TokenUsage,
)
from modelmesh.kernel.exceptions import (
    ErrorKind,
    InputInvalidError,
    InvocationError,
    InvocationTimeoutError,
    ModelNotFoundError,
    OutputInvalidError,
    UpstreamError,
)


class InvocationPolicy(BaseModel):
    """Timeout and retry policy for one model call.

    Attributes
    ----------
    timeout_ms : float
        Per-attempt timeout in milliseconds (default 30000)
    max_retries : int
        Retries after the first attempt, only for timeouts and upstream
        errors (default 2)
    backoff_base_ms : float
        Delay before retry ``n`` (0-based) is ``backoff_base_ms * 2**n``
    """

    model_config = ConfigDict(frozen=True)

    timeout_ms: float = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    backoff_base_ms: float = Field(default=DEFAULT_BACKOFF_BASE_MS, ge=0)

    @classmethod
    def from_config(cls, config: InvocationConfig) -> InvocationPolicy:
        return cls(
            timeout_ms=config.timeout_ms,
            max_retries=config.max_retries,
            backoff_base_ms=config.backoff_base_ms,
        )

    def with_overrides(self, overrides: dict[str, Any]) -> InvocationPolicy:
        """Return a copy with per-node overrides applied (re-validated)."""
        if not overrides:
            return self
        return type(self).model_validate({**self.model_dump(), **overrides})

    def backoff_seconds(self, retry_index: int) -> float:
        return self.backoff_base_ms * (2**retry_index) / 1000


class InvocationOutcome(StrEnum):
    """Classification of a finished invocation."""

    SUCCESS = "success"
    MODEL_NOT_FOUND = "model_not_found"
    VALIDATION_FAILED = "validation_failed"
    TIMEOUT = "timeout"
    UPSTREAM_ERROR = "upstream_error"
    OUTPUT_INVALID = "output_invalid"

    @property
    def retryable(self) -> bool:
        return self in (InvocationOutcome.TIMEOUT, InvocationOutcome.UPSTREAM_ERROR)

    @property
    def reached_model(self) -> bool:
        """Whether at least one request was sent to the model."""
        return self not in (InvocationOutcome.MODEL_NOT_FOUND, InvocationOutcome.VALIDATION_FAILED)


_ERROR_KINDS: dict[InvocationOutcome, ErrorKind] = {
    InvocationOutcome.MODEL_NOT_FOUND: ErrorKind.MODEL_NOT_FOUND,
    InvocationOutcome.VALIDATION_FAILED: ErrorKind.VALIDATION_FAILED,
    InvocationOutcome.TIMEOUT: ErrorKind.TIMEOUT,
    InvocationOutcome.UPSTREAM_ERROR: ErrorKind.UPSTREAM_ERROR,
    InvocationOutcome.OUTPUT_INVALID: ErrorKind.OUTPUT_INVALID,
}

_EXCEPTIONS: dict[InvocationOutcome, type[InvocationError]] = {
    InvocationOutcome.VALIDATION_FAILED: InputInvalidError,
    InvocationOutcome.TIMEOUT: InvocationTimeoutError,
    InvocationOutcome.UPSTREAM_ERROR: UpstreamError,
    InvocationOutcome.OUTPUT_INVALID: OutputInvalidError,
}


def error_kind_for(outcome: InvocationOutcome) -> ErrorKind:
    return _ERROR_KINDS[outcome]


class InvocationResult(BaseModel):
    """Value returned by the invoker for every call, successful or not.

    ``attempts`` counts HTTP requests actually sent, so it is zero when the
    model is unknown or the input is rejected before any network activity.
    ``latency_ms`` is the duration of the last attempt; ``elapsed_ms`` spans
    the whole call including retries and backoff.
    """

    model_config = ConfigDict(frozen=True)

    model_id: str
    model_name: str | None = None
    outcome: InvocationOutcome
    input: JsonValue = None
    output: JsonValue = None
    error: ErrorInfo | None = None
    attempts: int = 0
    latency_ms: float = 0.0
    elapsed_ms: float = 0.0
    cost: float | None = None
    token_usage: TokenUsage | None = None
    started_at: datetime
    completed_at: datetime

    @property
    def ok(self) -> bool:
        return self.outcome == InvocationOutcome.SUCCESS

    @property
    def status(self) -> InvocationStatus:
        if self.outcome == InvocationOutcome.SUCCESS:
            return InvocationStatus.SUCCESS
        if self.outcome == InvocationOutcome.TIMEOUT:
            return InvocationStatus.TIMEOUT
        return InvocationStatus.ERROR

    def raise_for_error(self) -> InvocationResult:
        """Raise the typed exception matching a failed outcome; return self on success.

        Raises
        ------
        ModelNotFoundError
            If the model id is unknown
        InvocationError
            Subclass matching the outcome for every other failure
        """
        if self.ok:
            return self
        if self.outcome == InvocationOutcome.MODEL_NOT_FOUND:
            raise ModelNotFoundError(self.model_id)
        assert self.error is not None
        raise _EXCEPTIONS[self.outcome](self.error)

    def to_invocation(self, node_id: str | None = None) -> Invocation:
        """Snapshot this result as an execution-record entry."""
        error = self.error
        if error is not None and node_id is not None:
            error = error.model_copy(update={"node_id": node_id})
        return Invocation(
            node_id=node_id,
            model_id=self.model_id,
            model_name=self.model_name,
            input=self.input,
            output=self.output,
            error=error,
            latency_ms=self.latency_ms,
            attempts=self.attempts,
            status=self.status,
            cost=self.cost,
            token_usage=self.token_usage,
            started_at=self.started_at,
            completed_at=self.completed_at,
        )
