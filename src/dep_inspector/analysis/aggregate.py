"""Graph reduction — per top-level dependency footprint metrics."""

import logging
from typing import Mapping, NamedTuple, Optional

from dep_inspector.models import (
    AggregateMetrics,
    DependencyGraph,
    LineCounts,
    NodeMetricWarning,
)

logger = logging.getLogger(__name__)


class AggregationResult(NamedTuple):
    metrics: dict[str, AggregateMetrics]
    warnings: list[NodeMetricWarning]


def reachable(
    adjacency: Mapping[str, list[str]],
    start: str,
    blocked: Optional[str] = None,
) -> set[str]:
    """Nodes reachable from ``start``, excluding ``start`` itself.

    Iterative depth-first search with its own visited set, so cycles and
    diamonds are walked once.  Traversal never enters ``blocked``.
    """
    visited: set[str] = {start}
    stack = [start]
    while stack:
        current = stack.pop()
        for nxt in adjacency.get(current, []):
            if nxt in visited or nxt == blocked:
                continue
            visited.add(nxt)
            stack.append(nxt)
    visited.discard(start)
    return visited


def find_cycles(graph: DependencyGraph) -> list[list[str]]:
    """Return one representative node list per back edge found."""
    adjacency = graph.adjacency()
    state: dict[str, int] = {}  # 1 = on stack, 2 = done
    cycles: list[list[str]] = []
    for start in sorted(adjacency):
        if start in state:
            continue
        path: list[str] = []
        stack: list[tuple[str, int]] = [(start, 0)]
        while stack:
            node, idx = stack.pop()
            if idx == 0:
                state[node] = 1
                path.append(node)
            children = adjacency.get(node, [])
            if idx < len(children):
                stack.append((node, idx + 1))
                child = children[idx]
                if state.get(child) == 1:
                    cycles.append(path[path.index(child):] + [child])
                elif child not in state:
                    stack.append((child, 0))
            else:
                state[node] = 2
                path.pop()
    return cycles


def aggregate(
    graph: DependencyGraph,
    counts: Mapping[str, LineCounts],
) -> AggregationResult:
    """Compute metrics for every top-level dependency of ``graph``.

    Each top-level dependency gets a fresh traversal: a package shared by two
    top-level dependencies is counted once for each of them.  Nodes without
    line counts contribute zero and are reported as warnings.
    """
    adjacency = graph.adjacency()
    warnings: dict[str, NodeMetricWarning] = {}

    def _counts(node_id: str) -> LineCounts:
        found = counts.get(node_id)
        if found is None:
            if node_id not in warnings:
                warnings[node_id] = NodeMetricWarning(
                    node_id=node_id, reason="line counts unavailable"
                )
            return LineCounts()
        return found

    def _names(ids: set[str]) -> list[str]:
        return sorted(graph.nodes[i].name for i in ids)

    reach = {t: reachable(adjacency, t) for t in graph.top_level}

    metrics: dict[str, AggregateMetrics] = {}
    for top in graph.top_level:
        deps = reach[top]
        own = _counts(top)
        dep_counts = [_counts(d) for d in sorted(deps)]

        # Whatever the other top-level dependencies reach without going
        # through ``top`` is not exclusive to it.
        others: set[str] = set()
        for other in graph.top_level:
            if other == top or other in others:
                continue
            others.add(other)
            others |= reachable(adjacency, other, blocked=top)

        metrics[top] = AggregateMetrics(
            node_id=top,
            transitive_count=len(deps),
            loc=own.loc,
            unsafe_loc=own.unsafe_loc,
            dependencies_loc=sum(c.loc for c in dep_counts),
            dependencies_unsafe_loc=sum(c.unsafe_loc for c in dep_counts),
            direct_dependencies=_names({d for d in adjacency[top] if d != top}),
            transitive_dependencies=_names(deps),
            exclusive_dependencies=_names(deps - others - {top}),
            root_importers=graph.importers_of(top),
        )
        logger.debug(
            "%s: %d transitive dependencies, %d total LOC",
            top,
            len(deps),
            metrics[top].total_loc,
        )

    for w in warnings.values():
        logger.warning("no line counts for %s; counting zero", w.node_id)
    return AggregationResult(metrics, list(warnings.values()))
