"""Graph resolution: turn a PipelineGraph into ordered execution levels.

Levels are computed with Kahn's algorithm. Every node of a level depends
only on nodes of earlier levels, so a level may run concurrently. Within a
level nodes are sorted by id, which makes plans (and the order in which
calls are issued) reproducible across runs.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import Enum, auto

from modelmesh.kernel.domain.pipeline import PipelineGraph
from modelmesh.kernel.exceptions import (
    CycleDetectedError,
    DanglingEdgeError,
    DuplicateNodeError,
)


class Color(Enum):
    """Colors for DFS cycle detection."""

    WHITE = auto()  # Unvisited
    GRAY = auto()  # In the current DFS path
    BLACK = auto()  # Done


@dataclass(frozen=True, slots=True)
class ExecutionPlan:
    """Ordered execution levels of a pipeline graph.

    Attributes
    ----------
    pipeline_id : str
        Identifier of the resolved graph
    levels : tuple[tuple[str, ...], ...]
        Node ids per level, each level sorted lexically
    """

    pipeline_id: str
    levels: tuple[tuple[str, ...], ...]

    def __iter__(self) -> Iterator[tuple[str, ...]]:
        return iter(self.levels)

    def __len__(self) -> int:
        return len(self.levels)

    @property
    def node_count(self) -> int:
        return sum(len(level) for level in self.levels)

    def level_of(self, node_id: str) -> int:
        for index, level in enumerate(self.levels):
            if node_id in level:
                return index
        raise KeyError(node_id)


def detect_cycle(graph: Mapping[str, set[str] | frozenset[str]]) -> str | None:
    """Describe one cycle in a dependency mapping using three-color DFS.

    Parameters
    ----------
    graph : Mapping[str, set[str] | frozenset[str]]
        Node id -> ids of the nodes it depends on

    Returns
    -------
    str | None
        Cycle description if found, None otherwise

    Examples
    --------
    >>> detect_cycle({"a": {"b"}, "b": {"c"}, "c": {"a"}})
    'Cycle detected: a -> b -> c -> a'
    >>> detect_cycle({"a": {"b"}, "b": set()}) is None
    True
    """
    colors = dict.fromkeys(graph, Color.WHITE)

    def dfs(node: str, path: list[str]) -> str | None:
        if colors[node] == Color.GRAY:
            cycle_start = path.index(node)
            cycle = path[cycle_start:] + [node]
            return f"Cycle detected: {' -> '.join(cycle)}"

        if colors[node] == Color.BLACK:
            return None

        colors[node] = Color.GRAY
        path.append(node)

        for dep in sorted(graph.get(node, ())):
            if dep in colors and (result := dfs(dep, path)):
                return result

        path.pop()
        colors[node] = Color.BLACK
        return None

    for node in sorted(graph):
        if colors[node] == Color.WHITE and (result := dfs(node, [])):
            return result

    return None


def _check_structure(graph: PipelineGraph) -> set[str]:
    node_ids: set[str] = set()
    for node in graph.nodes:
        if node.id in node_ids:
            raise DuplicateNodeError(f"Duplicate node id '{node.id}' in pipeline '{graph.id}'")
        node_ids.add(node.id)

    for edge in graph.edges:
        missing = [end for end in (edge.source, edge.target) if end not in node_ids]
        if missing:
            raise DanglingEdgeError(
                f"Edge '{edge.id}' ({edge.source} -> {edge.target}) references "
                f"unknown node(s): {', '.join(missing)}"
            )
    return node_ids


def resolve_plan(graph: PipelineGraph) -> ExecutionPlan:
    """Compute the execution levels of ``graph``.

    Structural problems are detected before ordering: duplicate node ids and
    dangling edges. A graph with no nodes resolves to an empty plan.

    Raises
    ------
    DuplicateNodeError
        If two nodes share an id
    DanglingEdgeError
        If an edge endpoint is not a node of the graph
    CycleDetectedError
        If nodes remain with non-zero in-degree once the queue drains

    Examples
    --------
    For A -> B -> D, A -> C -> D the levels are ``[["A"], ["B", "C"], ["D"]]``.
    """
    node_ids = _check_structure(graph)
    if not node_ids:
        return ExecutionPlan(pipeline_id=graph.id, levels=())

    # Parallel edges between the same pair count once
    dependencies: defaultdict[str, set[str]] = defaultdict(set)
    dependents: defaultdict[str, set[str]] = defaultdict(set)
    for edge in graph.edges:
        dependencies[edge.target].add(edge.source)
        dependents[edge.source].add(edge.target)

    in_degrees = {node_id: len(dependencies[node_id]) for node_id in node_ids}
    levels: list[tuple[str, ...]] = []
    ready = sorted(node_id for node_id, degree in in_degrees.items() if degree == 0)

    while ready:
        levels.append(tuple(ready))
        next_ready: list[str] = []
        for node_id in ready:
            del in_degrees[node_id]
            for dependent in dependents.get(node_id, ()):
                in_degrees[dependent] -= 1
                if in_degrees[dependent] == 0:
                    next_ready.append(dependent)
        ready = sorted(next_ready)

    if in_degrees:
        remaining = {
            node_id: {dep for dep in dependencies[node_id] if dep in in_degrees}
            for node_id in in_degrees
        }
        description = detect_cycle(remaining) or "Cycle detected"
        raise CycleDetectedError(
            f"{description} (unresolved nodes: {', '.join(sorted(in_degrees))})"
        )

    return ExecutionPlan(pipeline_id=graph.id, levels=tuple(levels))
