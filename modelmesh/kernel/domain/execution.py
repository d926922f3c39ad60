"""Execution records: the immutable history of pipeline and single-model runs.

An :class:`ExecutionRecord` is built by the orchestrator once a run reaches
a terminal state and is never edited afterwards. Records hold snapshots
(model id and name at call time), never live references to the directory,
so deleting a model leaves past records intact.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, JsonValue, computed_field

from modelmesh.kernel.exceptions import ErrorKind


class RunStatus(StrEnum):
    """Lifecycle status of an execution record."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class InvocationStatus(StrEnum):
    """Final status of one invocation (including its retries)."""

    SUCCESS = "success"
    ERROR = "error"
    TIMEOUT = "timeout"


def new_execution_id() -> str:
    return f"exec_{uuid.uuid4().hex}"


class ErrorInfo(BaseModel):
    """Structured failure description stored in records."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    detail: str
    status_code: int | None = None
    path: str | None = None
    node_id: str | None = None


class TokenUsage(BaseModel):
    """Units reported (or estimated) for one call."""

    model_config = ConfigDict(frozen=True)

    input: int = 0
    output: int = 0
    total: int = 0


class Invocation(BaseModel):
    """Record of one model call attempt sequence and its final outcome."""

    model_config = ConfigDict(frozen=True)

    node_id: str | None
    model_id: str
    model_name: str | None = None
    input: JsonValue = None
    output: JsonValue = None
    error: ErrorInfo | None = None
    latency_ms: float = 0.0
    attempts: int = 0
    status: InvocationStatus
    cost: float | None = None
    token_usage: TokenUsage | None = None
    started_at: datetime
    completed_at: datetime


class ExecutionRecord(BaseModel):
    """Full result of one pipeline (or single-model) run.

    ``invocations`` is in completion order. ``total_latency_ms`` and
    ``total_cost`` are derived and are included when the record is
    serialized.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_execution_id)
    pipeline_id: str | None = None
    status: RunStatus
    started_at: datetime
    completed_at: datetime | None = None
    invocations: tuple[Invocation, ...] = ()
    error: ErrorInfo | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_latency_ms(self) -> float | None:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds() * 1000

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_cost(self) -> float:
        return sum(inv.cost for inv in self.invocations if inv.cost is not None)

    def invocation_for(self, node_id: str) -> Invocation | None:
        for invocation in self.invocations:
            if invocation.node_id == node_id:
                return invocation
        return None

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, data: str | bytes) -> ExecutionRecord:
        return cls.model_validate_json(data)


class ExecutionSummary(BaseModel):
    """Aggregate figures over a set of execution records."""

    model_config = ConfigDict(frozen=True)

    runs: int = 0
    completed: int = 0
    failed: int = 0
    invocations: int = 0
    average_latency_ms: float | None = None
    total_cost: float = 0.0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def success_rate(self) -> float | None:
        return self.completed / self.runs if self.runs else None

    @classmethod
    def from_records(cls, records: Iterable[ExecutionRecord]) -> ExecutionSummary:
        runs = completed = failed = invocations = 0
        latencies: list[float] = []
        total_cost = 0.0
        for record in records:
            runs += 1
            if record.status == RunStatus.COMPLETED:
                completed += 1
            elif record.status == RunStatus.FAILED:
                failed += 1
            invocations += len(record.invocations)
            if record.total_latency_ms is not None:
                latencies.append(record.total_latency_ms)
            total_cost += record.total_cost
        return cls(
            runs=runs,
            completed=completed,
            failed=failed,
            invocations=invocations,
            average_latency_ms=sum(latencies) / len(latencies) if latencies else None,
            total_cost=total_cost,
        )
