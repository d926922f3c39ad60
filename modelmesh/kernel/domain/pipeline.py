"""Pipeline graph definition: nodes referencing models, edges carrying outputs.

A graph is allowed to be stored in an invalid state (dangling edges,
duplicate node ids, cycles). Those problems are only reported when the graph
is resolved into an execution plan.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, JsonValue

from modelmesh.kernel.domain.models import utc_now
from modelmesh.kernel.exceptions import ValidationError

# Node config keys understood by the orchestrator; everything else is carried as-is.
CONFIG_TIMEOUT_MS = "timeout_ms"
CONFIG_MAX_RETRIES = "max_retries"
CONFIG_BACKOFF_BASE_MS = "backoff_base_ms"
CONFIG_STATIC_INPUTS = "inputs"


class PipelineNode(BaseModel):
    """A graph vertex invoking one model."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    model_id: str = Field(min_length=1)
    config: dict[str, JsonValue] = Field(default_factory=dict)

    def policy_overrides(self) -> dict[str, Any]:
        """Extract per-node invocation policy overrides from ``config``.

        Raises
        ------
        ValidationError
            If an override is present but not a non-negative number
        """
        overrides: dict[str, Any] = {}
        for key in (CONFIG_TIMEOUT_MS, CONFIG_MAX_RETRIES, CONFIG_BACKOFF_BASE_MS):
            if key not in self.config:
                continue
            value = self.config[key]
            if isinstance(value, bool) or not isinstance(value, int | float) or value < 0:
                raise ValidationError(f"{self.id}.config.{key}", "must be a number >= 0", value)
            overrides[key] = int(value) if key == CONFIG_MAX_RETRIES else float(value)
        return overrides

    def static_inputs(self) -> dict[str, JsonValue]:
        value = self.config.get(CONFIG_STATIC_INPUTS)
        return dict(value) if isinstance(value, dict) else {}


class PipelineEdge(BaseModel):
    """Directed dependency: the source node's output feeds the target node."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"edge_{uuid.uuid4().hex[:8]}")
    source: str
    target: str
    source_port: str | None = None
    target_port: str | None = None


class PipelineGraph(BaseModel):
    """A workflow definition.

    Examples
    --------
    >>> graph = PipelineGraph(
    ...     id="summarize",
    ...     nodes=[PipelineNode(id="a", model_id="m1"), PipelineNode(id="b", model_id="m2")],
    ...     edges=[PipelineEdge(source="a", target="b")],
    ... )
    >>> graph.predecessors("b")
    ['a']
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"pipeline_{uuid.uuid4().hex[:12]}")
    name: str = ""
    description: str | None = None
    owner: str | None = None
    is_public: bool = False
    nodes: tuple[PipelineNode, ...] = ()
    edges: tuple[PipelineEdge, ...] = ()
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def node(self, node_id: str) -> PipelineNode:
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise KeyError(node_id)

    def incoming(self, node_id: str) -> list[PipelineEdge]:
        """Edges targeting ``node_id``, ordered by source id then edge id."""
        return sorted(
            (edge for edge in self.edges if edge.target == node_id),
            key=lambda edge: (edge.source, edge.id),
        )

    def predecessors(self, node_id: str) -> list[str]:
        return sorted({edge.source for edge in self.edges if edge.target == node_id})
