"""Dependency graph loading — native graph documents and cargo metadata."""

import json
import logging
import subprocess
from collections import deque
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from dep_inspector.errors import FatalGraphError
from dep_inspector.models import (
    DependencyEdge,
    DependencyGraph,
    EdgeKind,
    PackageNode,
    node_key,
)

logger = logging.getLogger(__name__)

GraphSource = Union[DependencyGraph, dict, str, Path]


def load_graph(
    source: GraphSource,
    packages: Optional[Iterable[str]] = None,
    ignore: Optional[Iterable[str]] = None,
) -> DependencyGraph:
    """Load a dependency graph from a model, a document, or a file.

    A path to a ``Cargo.toml`` runs ``cargo metadata``; a JSON file or dict
    is read either as cargo metadata output or as a native graph document.
    Raises :class:`FatalGraphError` when nothing usable can be loaded.
    """
    if isinstance(source, DependencyGraph):
        return source
    if isinstance(source, dict):
        return _graph_from_any(source, packages, ignore)

    path = Path(source)
    if path.name == "Cargo.toml":
        return graph_from_cargo_metadata(
            run_cargo_metadata(path), packages=packages, ignore=ignore
        )
    if not path.is_file():
        raise FatalGraphError(f"dependency graph not found: {path}")
    try:
        document = json.loads(path.read_text())
    except (OSError, UnicodeDecodeError) as e:
        raise FatalGraphError(f"could not read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise FatalGraphError(f"{path} is not valid JSON: {e}") from e
    if not isinstance(document, dict):
        raise FatalGraphError(f"{path} does not hold a JSON object")
    return _graph_from_any(document, packages, ignore)


def _graph_from_any(
    document: dict,
    packages: Optional[Iterable[str]],
    ignore: Optional[Iterable[str]],
) -> DependencyGraph:
    if "workspace_members" in document and "resolve" in document:
        return graph_from_cargo_metadata(document, packages=packages, ignore=ignore)
    return graph_from_document(document)


# ── Native graph document ─────────────────────────────────────────────────

def graph_from_document(document: dict[str, Any]) -> DependencyGraph:
    """Build a graph from ``{root, packages, edges, top_level, workspace_members}``.

    Edge endpoints and ``top_level`` entries reference a package's ``id``
    (defaulting to ``name@version``); edge sources may also be a workspace
    member name or the root, which makes the edge direct.
    """
    try:
        root = str(document.get("root", ""))
        members = [str(m) for m in document.get("workspace_members", [])]
        if root and root not in members:
            members.insert(0, root)

        nodes: dict[str, PackageNode] = {}
        ids: dict[str, str] = {}
        for raw in document.get("packages", []):
            node = PackageNode(
                name=raw["name"],
                version=str(raw.get("version", "")),
                path=raw.get("path"),
                repository=raw.get("repository"),
                description=raw.get("description"),
            )
            ids[str(raw.get("id", node.node_id))] = node.node_id
            nodes.setdefault(node.node_id, node)

        edges: list[DependencyEdge] = []
        for raw in document.get("edges", []):
            source, target = str(raw["from"]), str(raw["to"])
            if target not in ids:
                raise FatalGraphError(f"edge points at unknown package {target!r}")
            if source in ids:
                edges.append(DependencyEdge(source=ids[source], target=ids[target]))
            elif source in members:
                edges.append(
                    DependencyEdge(source=source, target=ids[target], kind=EdgeKind.direct)
                )
            else:
                raise FatalGraphError(f"edge starts at unknown package {source!r}")

        top_level: list[str] = []
        for ref in document.get("top_level", []):
            if str(ref) not in ids:
                raise FatalGraphError(f"top-level dependency {ref!r} is not a package")
            top_level.append(ids[str(ref)])
        for e in edges:
            if e.kind == EdgeKind.direct and e.target not in top_level:
                top_level.append(e.target)
        declared = {(e.source, e.target) for e in edges if e.kind == EdgeKind.direct}
        for node_id in top_level:
            if not any(target == node_id for _, target in declared):
                edges.append(
                    DependencyEdge(
                        source=root or "<root>", target=node_id, kind=EdgeKind.direct
                    )
                )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise FatalGraphError(f"malformed dependency graph document: {e}") from e

    return DependencyGraph(
        root=root,
        ecosystem=str(document.get("ecosystem", "")),
        nodes=nodes,
        edges=edges,
        top_level=top_level,
        workspace_members=members,
    )


# ── cargo metadata ────────────────────────────────────────────────────────

def run_cargo_metadata(manifest_path: Union[str, Path]) -> dict[str, Any]:
    """Run ``cargo metadata`` against a manifest and return its JSON output."""
    cmd = [
        "cargo",
        "metadata",
        "--format-version",
        "1",
        "--manifest-path",
        str(manifest_path),
    ]
    logger.debug("running %s", " ".join(cmd))
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True, check=False)
    except FileNotFoundError as e:
        raise FatalGraphError("cargo is not installed or not on PATH") from e
    if proc.returncode != 0:
        raise FatalGraphError(
            f"cargo metadata failed for {manifest_path}: {proc.stderr.strip()}"
        )
    try:
        return json.loads(proc.stdout)
    except json.JSONDecodeError as e:
        raise FatalGraphError(f"cargo metadata produced invalid JSON: {e}") from e


def _is_dev_only(dep: dict[str, Any]) -> bool:
    kinds = dep.get("dep_kinds") or []
    return bool(kinds) and all(k.get("kind") == "dev" for k in kinds)


def graph_from_cargo_metadata(
    metadata: dict[str, Any],
    packages: Optional[Iterable[str]] = None,
    ignore: Optional[Iterable[str]] = None,
) -> DependencyGraph:
    """Build a graph from ``cargo metadata --format-version 1`` output.

    ``packages`` restricts the analysis to the named workspace members,
    otherwise every member not listed in ``ignore`` is analyzed.  Dev-only
    links are dropped.
    """
    try:
        by_id: dict[str, dict[str, Any]] = {p["id"]: p for p in metadata["packages"]}
        member_ids: list[str] = list(metadata["workspace_members"])
        resolve = metadata.get("resolve")
        if not resolve:
            raise FatalGraphError("cargo metadata has no resolved dependency graph")
        links: dict[str, list[str]] = {}
        for node in resolve["nodes"]:
            if "deps" in node:
                links[node["id"]] = [d["pkg"] for d in node["deps"] if not _is_dev_only(d)]
            else:
                links[node["id"]] = list(node.get("dependencies", []))

        member_names = [by_id[m]["name"] for m in member_ids]
        wanted = set(packages or [])
        skipped = set(ignore or [])
        selected = [
            m
            for m in member_ids
            if (by_id[m]["name"] in wanted if wanted else by_id[m]["name"] not in skipped)
        ]
        if not selected:
            raise FatalGraphError("no package to analyze was found")

        # Members pulled in by selected members contribute their direct deps too.
        sources: list[str] = []
        pending = deque(selected)
        while pending:
            member = pending.popleft()
            if member in sources:
                continue
            sources.append(member)
            pending.extend(d for d in links.get(member, []) if d in member_ids)

        def _node_id(pkg_id: str) -> str:
            pkg = by_id[pkg_id]
            return node_key(pkg["name"], pkg["version"])

        nodes: dict[str, PackageNode] = {}
        edges: list[DependencyEdge] = []
        top_level: list[str] = []
        queue: deque[str] = deque()
        for member in sources:
            for dep in links.get(member, []):
                if dep in member_ids:
                    continue
                edges.append(
                    DependencyEdge(
                        source=by_id[member]["name"],
                        target=_node_id(dep),
                        kind=EdgeKind.direct,
                    )
                )
                if _node_id(dep) not in top_level:
                    top_level.append(_node_id(dep))
                queue.append(dep)

        seen: set[str] = set()
        while queue:
            pkg_id = queue.popleft()
            if pkg_id in seen:
                continue
            seen.add(pkg_id)
            pkg = by_id[pkg_id]
            manifest = pkg.get("manifest_path")
            nodes[_node_id(pkg_id)] = PackageNode(
                name=pkg["name"],
                version=pkg["version"],
                path=str(Path(manifest).parent) if manifest else None,
                repository=pkg.get("repository"),
                description=pkg.get("description"),
            )
            for dep in links.get(pkg_id, []):
                edges.append(DependencyEdge(source=_node_id(pkg_id), target=_node_id(dep)))
                queue.append(dep)
    except (KeyError, TypeError) as e:
        raise FatalGraphError(f"malformed cargo metadata: {e}") from e

    root = by_id[selected[0]]["name"]
    logger.info(
        "loaded %d packages (%d top-level) for %s", len(nodes), len(top_level), root
    )
    return DependencyGraph(
        root=root,
        ecosystem="cargo",
        nodes=nodes,
        edges=edges,
        top_level=top_level,
        workspace_members=member_names,
    )
