"""Port interface for the durable execution log."""

from abc import abstractmethod
from typing import Protocol, runtime_checkable

from modelmesh.kernel.domain.execution import ExecutionRecord


@runtime_checkable
class ExecutionStore(Protocol):
    """Append-only log of terminal execution records."""

    @abstractmethod
    async def aappend(self, record: ExecutionRecord) -> None:
        """Persist ``record`` atomically: written in full or not at all.

        Appending a record whose id is already stored must be harmless, so
        callers can retry after an ambiguous failure.
        """
        ...
