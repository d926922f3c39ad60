"""Pipeline Orchestrator - executes pipeline graphs level by level.

The orchestrator resolves a graph into execution levels, runs every node of
a level concurrently through the :class:`Invoker`, feeds outputs along edges
and builds one immutable :class:`ExecutionRecord` per run.

Levels run strictly in order: a level starts only after every node of the
previous level has terminated. If any node of a level fails, no further
level is started, and everything produced so far stays in the record.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from modelmesh.kernel.config.models import DEFAULT_MAX_CONCURRENT_NODES, ModelMeshConfig
from modelmesh.kernel.domain.dag import ExecutionPlan, resolve_plan
from modelmesh.kernel.domain.execution import (
    ErrorInfo,
    ExecutionRecord,
    Invocation,
    InvocationStatus,
    RunStatus,
    new_execution_id,
)
from modelmesh.kernel.domain.models import utc_now
from modelmesh.kernel.domain.pipeline import PipelineGraph, PipelineNode
from modelmesh.kernel.exceptions import ErrorKind, GraphError, OrchestratorError, ValidationError
from modelmesh.kernel.logging import get_logger, reset_correlation_id, set_correlation_id
from modelmesh.kernel.orchestration.invoker import Invoker
from modelmesh.kernel.orchestration.models import InvocationPolicy, InvocationResult
from modelmesh.kernel.ports.execution_store import ExecutionStore
from modelmesh.kernel.ports.model_directory import ModelDirectory

logger = get_logger(__name__)


class _RunState:
    """Mutable bookkeeping for one run; only the orchestrator touches it."""

    def __init__(self, graph: PipelineGraph, initial_input: Any) -> None:
        self.run_id = new_execution_id()
        self.graph = graph
        self.initial_input = initial_input
        self.started_at = utc_now()
        self.start = time.monotonic()
        self.outputs: dict[str, Any] = {}
        self.invocations: list[Invocation] = []

    def elapsed_ms(self) -> float:
        return (time.monotonic() - self.start) * 1000

    def build_record(self, error: ErrorInfo | None) -> ExecutionRecord:
        return ExecutionRecord(
            id=self.run_id,
            pipeline_id=self.graph.id,
            status=RunStatus.FAILED if error is not None else RunStatus.COMPLETED,
            started_at=self.started_at,
            completed_at=utc_now(),
            invocations=tuple(self.invocations),
            error=error,
        )


class PipelineOrchestrator:
    """Runs pipeline graphs and single model calls.

    Parameters
    ----------
    invoker : Invoker
        Performs the individual model calls
    store : ExecutionStore | None
        Receives every terminal execution record exactly once
    max_concurrent_nodes : int
        Upper bound on calls in flight within one level
    default_deadline_ms : float | None
        Pipeline deadline used when ``execute`` is not given one

    Examples
    --------
    Example usage::

        orchestrator = PipelineOrchestrator(Invoker(directory), store=store)
        record = await orchestrator.execute(graph, {"text": "hello"})
        if record.status == RunStatus.FAILED:
            print(record.error)
    """

    def __init__(
        self,
        invoker: Invoker,
        store: ExecutionStore | None = None,
        max_concurrent_nodes: int = DEFAULT_MAX_CONCURRENT_NODES,
        default_deadline_ms: float | None = None,
    ) -> None:
        if max_concurrent_nodes < 1:
            raise OrchestratorError("max_concurrent_nodes must be >= 1")
        self.invoker = invoker
        self.store = store
        self.max_concurrent_nodes = max_concurrent_nodes
        self.default_deadline_ms = default_deadline_ms

    @classmethod
    def from_config(
        cls,
        config: ModelMeshConfig,
        directory: ModelDirectory,
        store: ExecutionStore | None = None,
        **invoker_kwargs: Any,
    ) -> PipelineOrchestrator:
        """Build an orchestrator and its invoker from loaded configuration."""
        invoker = Invoker(
            directory,
            default_policy=InvocationPolicy.from_config(config.invocation),
            **invoker_kwargs,
        )
        return cls(
            invoker,
            store=store,
            max_concurrent_nodes=config.orchestrator.max_concurrent_nodes,
            default_deadline_ms=config.orchestrator.deadline_ms,
        )

    def plan(self, graph: PipelineGraph) -> ExecutionPlan:
        """Resolve ``graph`` without running it (raises :class:`GraphError`)."""
        return resolve_plan(graph)

    async def execute(
        self,
        graph: PipelineGraph,
        initial_input: Any = None,
        *,
        deadline_ms: float | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> ExecutionRecord:
        """Execute ``graph`` and return its execution record.

        Failures never raise: the returned record has status ``failed`` and
        a structured ``error``. The cancel event and the deadline are checked
        before each level; calls already in flight are always allowed to
        finish.

        If the awaiting task itself is cancelled, the current level still
        completes, a ``cancelled`` record is persisted and
        :class:`asyncio.CancelledError` is re-raised.
        """
        state = _RunState(graph, initial_input)
        deadline_ms = deadline_ms if deadline_ms is not None else self.default_deadline_ms
        token = set_correlation_id(state.run_id)
        try:
            try:
                plan = resolve_plan(graph)
            except GraphError as e:
                logger.warning(
                    "Pipeline '{pipeline}' rejected: {error}", pipeline=graph.id, error=e
                )
                record = state.build_record(ErrorInfo(kind=e.kind, detail=e.detail))
                await self._persist(record)
                return record

            logger.info(
                "Pipeline '{pipeline}' started: {levels} level(s), {nodes} node(s)",
                pipeline=graph.id,
                levels=len(plan),
                nodes=plan.node_count,
            )
            error = await self._execute_levels(plan, state, deadline_ms, cancel_event)
            record = state.build_record(error)
            await self._persist(record)
            logger.info(
                "Pipeline '{pipeline}' {status} in {duration:.1f} ms ({count} invocation(s))",
                pipeline=graph.id,
                status=record.status.value,
                duration=record.total_latency_ms or 0.0,
                count=len(record.invocations),
            )
            return record
        finally:
            reset_correlation_id(token)

    async def _execute_levels(
        self,
        plan: ExecutionPlan,
        state: _RunState,
        deadline_ms: float | None,
        cancel_event: asyncio.Event | None,
    ) -> ErrorInfo | None:
        semaphore = asyncio.Semaphore(self.max_concurrent_nodes)
        for index, level in enumerate(plan.levels):
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Run cancelled before level {level}", level=index)
                return ErrorInfo(kind=ErrorKind.CANCELLED, detail="cancelled")
            if deadline_ms is not None and state.elapsed_ms() > deadline_ms:
                logger.info("Deadline of {deadline} ms exceeded before level {level}",
                            deadline=deadline_ms, level=index)
                return ErrorInfo(kind=ErrorKind.CANCELLED, detail="deadline exceeded")

            logger.debug("Level {level} started: {nodes}", level=index, nodes=list(level))
            level_task = asyncio.ensure_future(self._run_level(level, state, semaphore))
            try:
                failures = await asyncio.shield(level_task)
            except asyncio.CancelledError:
                # In-flight calls are not aborted: wait for the level, record, re-raise
                await self._drain(level_task)
                record = state.build_record(
                    ErrorInfo(kind=ErrorKind.CANCELLED, detail="cancelled")
                )
                await self._persist(record)
                raise

            if failures:
                return failures[0]
        return None

    @staticmethod
    async def _drain(level_task: asyncio.Future[list[ErrorInfo]]) -> None:
        """Wait for ``level_task`` however many more times the caller is cancelled."""
        while not level_task.done():
            try:
                await asyncio.shield(level_task)
            except asyncio.CancelledError:
                if level_task.cancelled():
                    raise
                logger.debug("Repeated cancellation while draining a level")

    async def _run_level(
        self,
        level: tuple[str, ...],
        state: _RunState,
        semaphore: asyncio.Semaphore,
    ) -> list[ErrorInfo]:
        """Run every node of ``level`` concurrently; return failures in node id order."""
        invocations = await asyncio.gather(
            *(self._run_node(state.graph.node(node_id), state, semaphore) for node_id in level)
        )
        return [
            inv.error
            for inv in invocations
            if inv.status != InvocationStatus.SUCCESS and inv.error is not None
        ]

    async def _run_node(
        self,
        node: PipelineNode,
        state: _RunState,
        semaphore: asyncio.Semaphore,
    ) -> Invocation:
        started_at = utc_now()
        payload: Any = None
        try:
            payload = self._prepare_input(node, state)
            policy = self.invoker.default_policy.with_overrides(node.policy_overrides())
            async with semaphore:
                result = await self.invoker.ainvoke(node.model_id, payload, policy)
            invocation = result.to_invocation(node.id)
        except (ValidationError, PydanticValidationError) as e:
            invocation = self._failed_invocation(
                node, payload, started_at, ErrorKind.VALIDATION_FAILED, f"invalid node setup: {e}"
            )
        except Exception as e:
            logger.exception("Unexpected error in node '{node}'", node=node.id)
            invocation = self._failed_invocation(
                node, payload, started_at, ErrorKind.INTERNAL_ERROR, f"{type(e).__name__}: {e}"
            )

        # Appended on completion, so the record reflects completion order
        state.invocations.append(invocation)
        if invocation.status == InvocationStatus.SUCCESS:
            state.outputs[node.id] = invocation.output
        logger.debug(
            "Node '{node}' finished: {status}", node=node.id, status=invocation.status.value
        )
        return invocation

    @staticmethod
    def _failed_invocation(
        node: PipelineNode,
        payload: Any,
        started_at: datetime,
        kind: ErrorKind,
        detail: str,
    ) -> Invocation:
        return Invocation(
            node_id=node.id,
            model_id=node.model_id,
            input=payload,
            error=ErrorInfo(kind=kind, detail=detail, node_id=node.id),
            status=InvocationStatus.ERROR,
            started_at=started_at,
            completed_at=utc_now(),
        )

    @staticmethod
    def _prepare_input(node: PipelineNode, state: _RunState) -> Any:
        """Gather a node's input from the initial input or its predecessors.

        - No incoming edges: the pipeline's initial input
        - One incoming edge without ports: the source output as-is
        - Several incoming edges: a mapping keyed by ``target_port`` when the
          edge names one, else by source node id; two different edges landing
          on the same key fail the node with ``validation_failed``

        ``source_port`` picks a key out of a mapping-shaped source output.
        Static ``inputs`` from the node config are merged underneath a
        mapping-shaped input.
        """
        incoming = state.graph.incoming(node.id)
        payload: Any
        if not incoming:
            payload = state.initial_input
        else:
            origins: dict[str, tuple[str, str | None]] = {}
            values: dict[str, Any] = {}
            for edge in incoming:
                key = edge.target_port or edge.source
                origin = (edge.source, edge.source_port)
                if key in origins:
                    if origins[key] == origin:
                        continue
                    raise ValidationError(
                        f"{node.id}.input.{key}", "is fed by more than one edge"
                    )
                value = state.outputs[edge.source]
                if edge.source_port is not None and isinstance(value, dict):
                    value = value.get(edge.source_port)
                origins[key] = origin
                values[key] = value

            if len(values) == 1 and incoming[0].target_port is None:
                payload = next(iter(values.values()))
            else:
                payload = values

        static_inputs = node.static_inputs()
        if static_inputs and (payload is None or isinstance(payload, dict)):
            payload = {**static_inputs, **(payload or {})}
        return payload

    async def execute_single(
        self,
        model_id: str,
        payload: Any,
        *,
        policy: InvocationPolicy | None = None,
        persist: bool = False,
    ) -> InvocationResult:
        """Invoke one model directly, outside any pipeline.

        With ``persist=True`` a one-invocation record without pipeline
        reference is appended to the store.
        """
        result = await self.invoker.ainvoke(model_id, payload, policy)
        if persist:
            record = ExecutionRecord(
                pipeline_id=None,
                status=RunStatus.COMPLETED if result.ok else RunStatus.FAILED,
                started_at=result.started_at,
                completed_at=result.completed_at,
                invocations=(result.to_invocation(),),
                error=result.error,
            )
            await self._persist(record)
        return result

    async def _persist(self, record: ExecutionRecord) -> None:
        if self.store is None:
            return
        await self.store.aappend(record)
        logger.debug("Execution record {record} stored", record=record.id)
