"""In-memory execution store for tests and short-lived processes."""

from __future__ import annotations

from modelmesh.kernel.domain.execution import ExecutionRecord, ExecutionSummary, RunStatus
from modelmesh.kernel.logging import get_logger
from modelmesh.kernel.ports.execution_store import ExecutionStore

logger = get_logger(__name__)

__all__ = ["InMemoryExecutionStore", "filter_records"]


def filter_records(
    records: list[ExecutionRecord],
    pipeline_id: str | None = None,
    status: RunStatus | str | None = None,
    limit: int | None = None,
) -> list[ExecutionRecord]:
    """Filter records, newest first, keeping at most ``limit`` of them."""
    selected = [
        record
        for record in reversed(records)
        if (pipeline_id is None or record.pipeline_id == pipeline_id)
        and (status is None or record.status == status)
    ]
    return selected[:limit] if limit is not None else selected


class InMemoryExecutionStore(ExecutionStore):
    """Keeps execution records in insertion order.

    Appending a record whose id is already present is a no-op.
    """

    def __init__(self) -> None:
        self._records: list[ExecutionRecord] = []
        self._ids: set[str] = set()

    def __len__(self) -> int:
        return len(self._records)

    async def aappend(self, record: ExecutionRecord) -> None:
        if record.id in self._ids:
            logger.debug("Record {record} already stored", record=record.id)
            return
        self._ids.add(record.id)
        self._records.append(record)

    async def aget(self, record_id: str) -> ExecutionRecord | None:
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    async def alist(
        self,
        pipeline_id: str | None = None,
        status: RunStatus | str | None = None,
        limit: int | None = None,
    ) -> list[ExecutionRecord]:
        return filter_records(self._records, pipeline_id, status, limit)

    async def asummary(self, pipeline_id: str | None = None) -> ExecutionSummary:
        return ExecutionSummary.from_records(await self.alist(pipeline_id=pipeline_id))
