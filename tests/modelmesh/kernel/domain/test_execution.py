"""Tests for modelmesh.kernel.domain.execution."""

from datetime import UTC, datetime, timedelta

from modelmesh.kernel.domain.execution import (
    ErrorInfo,
    ExecutionRecord,
    ExecutionSummary,
    Invocation,
    InvocationStatus,
    RunStatus,
    TokenUsage,
)
from modelmesh.kernel.exceptions import ErrorKind

START = datetime(2026, 1, 5, 12, 0, tzinfo=UTC)


def _invocation(node_id: str, cost: float | None, status=InvocationStatus.SUCCESS) -> Invocation:
    return Invocation(
        node_id=node_id,
        model_id=f"model-{node_id}",
        model_name=node_id.upper(),
        input={"text": "hi"},
        output={"label": "positive"} if status == InvocationStatus.SUCCESS else None,
        error=None
        if status == InvocationStatus.SUCCESS
        else ErrorInfo(kind=ErrorKind.UPSTREAM_ERROR, detail="HTTP 503", status_code=503),
        latency_ms=120.5,
        attempts=1,
        status=status,
        cost=cost,
        token_usage=TokenUsage(input=2, output=3, total=5),
        started_at=START,
        completed_at=START + timedelta(milliseconds=120),
    )


def _record(status: RunStatus, *invocations: Invocation, ms: int = 250) -> ExecutionRecord:
    return ExecutionRecord(
        pipeline_id="triage",
        status=status,
        started_at=START,
        completed_at=START + timedelta(milliseconds=ms),
        invocations=invocations,
    )


class TestExecutionRecord:
    def test_derived_totals(self) -> None:
        record = _record(
            RunStatus.COMPLETED,
            _invocation("a", 0.25),
            _invocation("b", None),
            _invocation("c", 1.0),
        )

        assert record.total_latency_ms == 250
        assert record.total_cost == 1.25

    def test_running_record_has_no_total_latency(self) -> None:
        record = ExecutionRecord(status=RunStatus.RUNNING, started_at=START)
        assert record.total_latency_ms is None

    def test_ids_are_generated(self) -> None:
        first = _record(RunStatus.COMPLETED)
        second = _record(RunStatus.COMPLETED)

        assert first.id.startswith("exec_")
        assert first.id != second.id

    def test_json_round_trip(self) -> None:
        record = _record(
            RunStatus.FAILED,
            _invocation("a", 0.5),
            _invocation("b", None, status=InvocationStatus.ERROR),
        )

        restored = ExecutionRecord.from_json(record.to_json())

        assert restored == record
        assert restored.invocations[1].error is not None
        assert restored.invocations[1].error.kind == ErrorKind.UPSTREAM_ERROR

    def test_serialized_form_includes_derived_fields(self) -> None:
        data = _record(RunStatus.COMPLETED, _invocation("a", 2.0)).model_dump(mode="json")

        assert data["total_cost"] == 2.0
        assert data["total_latency_ms"] == 250
        assert data["status"] == "completed"

    def test_invocation_for(self) -> None:
        record = _record(RunStatus.COMPLETED, _invocation("a", None))

        assert record.invocation_for("a") is not None
        assert record.invocation_for("missing") is None


def test_summary_from_records() -> None:
    records = [
        _record(RunStatus.COMPLETED, _invocation("a", 1.0), ms=100),
        _record(RunStatus.COMPLETED, _invocation("a", 1.0), _invocation("b", 0.5), ms=300),
        _record(RunStatus.FAILED, _invocation("a", None, InvocationStatus.ERROR), ms=200),
    ]

    summary = ExecutionSummary.from_records(records)

    assert summary.runs == 3
    assert summary.completed == 2
    assert summary.failed == 1
    assert summary.invocations == 4
    assert summary.average_latency_ms == 200
    assert summary.total_cost == 2.5
    assert summary.success_rate == 2 / 3


def test_empty_summary() -> None:
    summary = ExecutionSummary.from_records([])

    assert summary.runs == 0
    assert summary.success_rate is None
    assert summary.average_latency_ms is None
