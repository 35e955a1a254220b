"""Version deduplication — one node per logical dependency.

Several versions of the same crate can end up in one build.  Counting each
of them separately would inflate transitive counts, so nodes are keyed by
name only: candidates are sorted by name then version and the first one
wins.  Later versions are merged into it and every edge pointing at them is
redirected.  This is a deliberate approximation; the merged versions stay
visible on the kept node and in the returned decisions.
"""

import logging
import re
from typing import NamedTuple

from dep_inspector.models import (
    DeduplicationAmbiguity,
    DependencyEdge,
    DependencyGraph,
    EdgeKind,
    PackageNode,
)

logger = logging.getLogger(__name__)

_SPLIT_RE = re.compile(r"[.\-+]")


class DedupResult(NamedTuple):
    graph: DependencyGraph
    decisions: list[DeduplicationAmbiguity]


def version_key(version: str) -> tuple:
    """Sort key ordering versions numerically where possible.

    ``0.9.0`` sorts before ``0.10.0`` and a pre-release before its release.
    """
    release, _, pre = version.partition("-")
    release = release.split("+", 1)[0]
    parts = tuple(
        (0, int(p), "") if p.isdigit() else (1, 0, p)
        for p in _SPLIT_RE.split(release)
        if p
    )
    pre_parts = tuple(
        (0, int(p), "") if p.isdigit() else (1, 0, p) for p in _SPLIT_RE.split(pre) if p
    )
    # Releases (no pre-release tag) sort after their pre-releases.
    return (parts, 0 if pre else 1, pre_parts, version)


def deduplicate(graph: DependencyGraph) -> DedupResult:
    """Collapse nodes sharing a name and rewrite the edges.

    Workspace members are dropped first: a package is never its own
    third-party dependency.  Applying this twice is a no-op.
    """
    members = set(graph.workspace_members)
    candidates = sorted(
        (n for n in graph.nodes.values() if n.name not in members),
        key=lambda n: (n.name, version_key(n.version)),
    )

    kept: dict[str, PackageNode] = {}  # name -> representative
    redirect: dict[str, str] = {}  # node id -> representative id
    merged: dict[str, list[str]] = {}
    for node in candidates:
        rep = kept.get(node.name)
        if rep is None:
            kept[node.name] = node
            redirect[node.node_id] = node.node_id
            continue
        redirect[node.node_id] = rep.node_id
        merged.setdefault(node.name, []).append(node.version)

    nodes: dict[str, PackageNode] = {}
    decisions: list[DeduplicationAmbiguity] = []
    for name, rep in kept.items():
        extra = merged.get(name, [])
        versions = sorted(set(rep.versions).union(extra), key=version_key)
        nodes[rep.node_id] = rep.model_copy(update={"versions": versions})
        if extra:
            decisions.append(
                DeduplicationAmbiguity(name=name, kept_version=rep.version, merged_versions=extra)
            )
            logger.info(
                "deduplicated %s: kept %s, merged %s", name, rep.version, ", ".join(extra)
            )

    edges: set[DependencyEdge] = set()
    for edge in graph.edges:
        target = redirect.get(edge.target)
        if target is None:
            continue  # points at a workspace member or an unknown node
        if edge.kind == EdgeKind.direct:
            if edge.source in redirect:
                continue  # a dependency cannot be a direct consumer
            edges.add(DependencyEdge(source=edge.source, target=target, kind=EdgeKind.direct))
            continue
        source = redirect.get(edge.source)
        if source is None or source == target:
            continue
        edges.add(DependencyEdge(source=source, target=target))

    top_level: list[str] = []
    for node_id in graph.top_level:
        rep_id = redirect.get(node_id)
        if rep_id is not None and rep_id not in top_level:
            top_level.append(rep_id)

    deduped = DependencyGraph(
        root=graph.root,
        ecosystem=graph.ecosystem,
        nodes=nodes,
        edges=sorted(edges, key=lambda e: (e.kind.value, e.source, e.target)),
        top_level=sorted(top_level),
        workspace_members=graph.workspace_members,
    )
    return DedupResult(deduped, decisions)
