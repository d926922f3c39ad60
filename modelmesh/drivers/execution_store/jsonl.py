"""Durable append-only execution log stored as JSON Lines.

Each record is serialized completely before anything touches the file and is
then written with a single ``write`` call while holding an ``asyncio.Lock``,
so a record is either fully present or absent. Readers skip a trailing line
that does not parse (a write interrupted by a crash); the next append cuts
such a line off before writing.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from modelmesh.drivers.execution_store.in_memory import filter_records
from modelmesh.kernel.domain.execution import ExecutionRecord, ExecutionSummary, RunStatus
from modelmesh.kernel.exceptions import ExecutionStoreError
from modelmesh.kernel.logging import get_logger
from modelmesh.kernel.ports.execution_store import ExecutionStore

logger = get_logger(__name__)

__all__ = ["JsonlExecutionStore"]


class JsonlExecutionStore(ExecutionStore):
    """Execution store appending one JSON document per line to ``path``.

    Parameters
    ----------
    path : str | Path
        Log file; created (with parent directories) on first append

    Examples
    --------
    Example usage::

        store = JsonlExecutionStore("runs/executions.jsonl")
        orchestrator = PipelineOrchestrator(invoker, store=store)
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()
        self._known_ids: set[str] | None = None

    def _read_all(self) -> list[ExecutionRecord]:
        if not self.path.exists():
            return []
        records: list[ExecutionRecord] = []
        try:
            lines = self.path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            raise ExecutionStoreError(f"Cannot read execution log {self.path}: {e}") from e

        for number, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                records.append(ExecutionRecord.from_json(line))
            except PydanticValidationError as e:
                if number == len(lines):
                    logger.warning(
                        "Ignoring truncated last line of {path}", path=str(self.path)
                    )
                    continue
                raise ExecutionStoreError(
                    f"Corrupt record on line {number} of {self.path}: {e}"
                ) from e
        return records

    def _repair_tail(self) -> None:
        """Leave the log ending in a newline so the next record starts a line.

        An unterminated last line is kept (and terminated) when it holds a
        complete record, and cut off when it is a partial write.
        """
        if not self.path.exists():
            return
        with self.path.open("rb+") as fh:
            size = fh.seek(0, os.SEEK_END)
            if size == 0:
                return
            fh.seek(size - 1)
            if fh.read(1) == b"\n":
                return
            fh.seek(0)
            data = fh.read()
            start = data.rfind(b"\n") + 1
            try:
                ExecutionRecord.from_json(data[start:].decode("utf-8"))
            except (UnicodeDecodeError, PydanticValidationError):
                logger.warning(
                    "Dropping truncated last line of {path} ({size} bytes)",
                    path=str(self.path),
                    size=size - start,
                )
                fh.truncate(start)
            else:
                fh.write(b"\n")

    async def aappend(self, record: ExecutionRecord) -> None:
        line = record.to_json() + "\n"
        async with self._lock:
            if self._known_ids is None:
                self._known_ids = {existing.id for existing in self._read_all()}
            if record.id in self._known_ids:
                logger.debug("Record {record} already stored", record=record.id)
                return
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self._repair_tail()
                with self.path.open("a", encoding="utf-8") as fh:
                    fh.write(line)
            except OSError as e:
                raise ExecutionStoreError(f"Cannot append to {self.path}: {e}") from e
            self._known_ids.add(record.id)

    async def aget(self, record_id: str) -> ExecutionRecord | None:
        for record in self._read_all():
            if record.id == record_id:
                return record
        return None

    async def alist(
        self,
        pipeline_id: str | None = None,
        status: RunStatus | str | None = None,
        limit: int | None = None,
    ) -> list[ExecutionRecord]:
        return filter_records(self._read_all(), pipeline_id, status, limit)

    async def asummary(self, pipeline_id: str | None = None) -> ExecutionSummary:
        return ExecutionSummary.from_records(await self.alist(pipeline_id=pipeline_id))
