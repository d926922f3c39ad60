"""Port interface for the model directory.

The orchestration core only needs two things from the directory: look a
model up by identifier and report the outcome of a call. Registration,
search and deletion belong to concrete directories.
"""

from abc import abstractmethod
from typing import Literal, Protocol, runtime_checkable

from modelmesh.kernel.domain.models import ModelMetadata

OutcomeStatus = Literal["online", "error"]


@runtime_checkable
class ModelDirectory(Protocol):
    """Lookup and health bookkeeping for registered models."""

    @abstractmethod
    async def aresolve(self, model_id: str) -> ModelMetadata | None:
        """Return the metadata for ``model_id``, or None if it is unknown."""
        ...

    @abstractmethod
    async def arecord_outcome(
        self, model_id: str, status: OutcomeStatus, observed_latency_ms: float
    ) -> None:
        """Record the terminal outcome of a call or health probe.

        Implementations update ``status`` and, for ``online`` outcomes, fold
        ``observed_latency_ms`` into the rolling latency estimate. Concurrent
        writers for the same model may interleave; last write wins.
        """
        ...
