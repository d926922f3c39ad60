"""In-memory model directory: registry, discovery and health bookkeeping."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Iterable
from typing import Any

from modelmesh.kernel.domain.models import (
    ModelMetadata,
    ModelStatus,
    ModelType,
    SecurityPolicy,
    utc_now,
)
from modelmesh.kernel.exceptions import DuplicateModelError, ModelNotFoundError, ValidationError
from modelmesh.kernel.logging import get_logger
from modelmesh.kernel.ports.model_directory import ModelDirectory, OutcomeStatus

logger = get_logger(__name__)

__all__ = ["InMemoryModelDirectory", "rolling_latency"]

# Mutated only as a consequence of invocations and probes, never by ``update``
_RUNTIME_FIELDS = frozenset({"id", "status", "latency_ms", "last_checked", "created_at"})


def rolling_latency(previous_ms: int, observed_ms: float) -> int:
    """Average the previous estimate with a new observation.

    >>> rolling_latency(400, 200)
    300
    """
    return round((previous_ms + observed_ms) / 2)


class InMemoryModelDirectory(ModelDirectory):
    """Dictionary-backed directory suitable for tests and single-process use.

    Features:
    - Registration with duplicate-id rejection
    - Search by type, tags, status, latency bound and security policy
    - Rolling latency estimate fed by invocation outcomes
    - Per-model locks, so updates to different models never contend

    Parameters
    ----------
    models : Iterable[ModelMetadata] | None
        Models to preload. Unlike :meth:`aregister` their status is kept
        as given, which lets catalogs declare models as already online.
    """

    def __init__(self, models: Iterable[ModelMetadata] | None = None) -> None:
        self._models: dict[str, ModelMetadata] = {}
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        for model in models or ():
            if model.id in self._models:
                raise DuplicateModelError(model.id)
            self._models[model.id] = model

    def __len__(self) -> int:
        return len(self._models)

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._models

    # ------------------------------------------------------------------
    # ModelDirectory port
    # ------------------------------------------------------------------

    async def aresolve(self, model_id: str) -> ModelMetadata | None:
        return self._models.get(model_id)

    async def arecord_outcome(
        self, model_id: str, status: OutcomeStatus, observed_latency_ms: float
    ) -> None:
        async with self._locks[model_id]:
            model = self._models.get(model_id)
            if model is None:
                # Deleted while the call was in flight
                logger.debug("Outcome for unknown model '{model}' ignored", model=model_id)
                return
            changes: dict[str, Any] = {
                "status": ModelStatus(status),
                "last_checked": utc_now(),
            }
            if status == ModelStatus.ONLINE:
                changes["latency_ms"] = rolling_latency(model.latency_ms, observed_latency_ms)
            self._models[model_id] = model.model_copy(update=changes)

        if model.status != changes["status"]:
            logger.info(
                "Model '{model}' is now {status}", model=model_id, status=changes["status"].value
            )

    # ------------------------------------------------------------------
    # Registry operations
    # ------------------------------------------------------------------

    async def aregister(self, metadata: ModelMetadata) -> ModelMetadata:
        """Register a new model; its status starts ``offline``.

        Raises
        ------
        DuplicateModelError
            If the identifier is already registered
        """
        async with self._locks[metadata.id]:
            if metadata.id in self._models:
                raise DuplicateModelError(metadata.id)
            model = metadata.model_copy(update={"status": ModelStatus.OFFLINE})
            self._models[model.id] = model
        logger.info("Registered model '{model}' ({name})", model=model.id, name=model.name)
        return model

    async def aget(self, model_id: str) -> ModelMetadata:
        """Return the model, raising :class:`ModelNotFoundError` when unknown."""
        model = self._models.get(model_id)
        if model is None:
            raise ModelNotFoundError(model_id, available=sorted(self._models))
        return model

    async def alist(self) -> list[ModelMetadata]:
        return sorted(self._models.values(), key=lambda model: model.id)

    async def aupdate(self, model_id: str, **changes: Any) -> ModelMetadata:
        """Update descriptive fields of a model.

        Raises
        ------
        ModelNotFoundError
            If the model is unknown
        ValidationError
            If ``changes`` touch the identifier or a runtime-managed field,
            or produce invalid metadata
        """
        forbidden = sorted(_RUNTIME_FIELDS & changes.keys())
        if forbidden:
            raise ValidationError(forbidden[0], "cannot be changed through update")
        async with self._locks[model_id]:
            model = await self.aget(model_id)
            merged = {**model.model_dump(), **changes}
            try:
                updated = ModelMetadata.model_validate(merged)
            except ValueError as e:
                raise ValidationError(model_id, str(e)) from e
            self._models[model_id] = updated
        return updated

    async def adelete(self, model_id: str) -> bool:
        """Remove a model. Past execution records keep their snapshots."""
        async with self._locks[model_id]:
            removed = self._models.pop(model_id, None) is not None
        self._locks.pop(model_id, None)
        if removed:
            logger.info("Deleted model '{model}'", model=model_id)
        return removed

    async def asearch(
        self,
        *,
        model_type: ModelType | str | None = None,
        tags: Iterable[str] | None = None,
        status: ModelStatus | str | None = None,
        max_latency_ms: float | None = None,
        security_policy: SecurityPolicy | str | None = None,
    ) -> list[ModelMetadata]:
        """Find models matching every given criterion.

        All requested ``tags`` must be present on a model for it to match.

        Examples
        --------
        Example usage::

            fast_llms = await directory.asearch(model_type="llm", max_latency_ms=500)
        """
        wanted_tags = frozenset(tags or ())
        results = []
        for model in await self.alist():
            if model_type is not None and model.model_type != model_type:
                continue
            if status is not None and model.status != status:
                continue
            if security_policy is not None and model.security_policy != security_policy:
                continue
            if max_latency_ms is not None and model.latency_ms > max_latency_ms:
                continue
            if not wanted_tags <= model.tags:
                continue
            results.append(model)
        return results
