"""Pytest configuration and fixtures."""

import pytest

from dep_inspector.models import DependencyEdge, DependencyGraph, EdgeKind, PackageNode


@pytest.fixture(scope="session")
def anyio_backend():
    """Configure anyio backend for async tests."""
    return "asyncio"


def nid(name: str, version: str = "1.0.0") -> str:
    return f"{name}@{version}"


def build_graph(
    links: dict[str, list[str]],
    top_level: list[str],
    root: str = "app",
) -> DependencyGraph:
    """Graph of ``name@1.0.0`` nodes from a name → dependency names mapping."""
    names = set(links) | {d for deps in links.values() for d in deps} | set(top_level)
    nodes = {nid(n): PackageNode(name=n, version="1.0.0") for n in sorted(names)}
    edges = [
        DependencyEdge(source=nid(src), target=nid(dst))
        for src, deps in links.items()
        for dst in deps
    ]
    edges += [
        DependencyEdge(source=root, target=nid(t), kind=EdgeKind.direct) for t in top_level
    ]
    return DependencyGraph(
        root=root,
        nodes=nodes,
        edges=edges,
        top_level=[nid(t) for t in top_level],
        workspace_members=[root],
    )


@pytest.fixture
def graph_document():
    """X → {Y, Z}, W → {Y}, declared by the workspace member ``app``."""
    return {
        "root": "app",
        "packages": [
            {"name": "x", "version": "1.0.0", "repository": "https://github.com/org/x"},
            {"name": "y", "version": "2.1.0", "repository": "https://github.com/org/y.git"},
            {"name": "z", "version": "0.3.0"},
            {"name": "w", "version": "1.2.0", "repository": "git://github.com/org/w"},
        ],
        "edges": [
            {"from": "app", "to": "x@1.0.0"},
            {"from": "app", "to": "w@1.2.0"},
            {"from": "x@1.0.0", "to": "y@2.1.0"},
            {"from": "x@1.0.0", "to": "z@0.3.0"},
            {"from": "w@1.2.0", "to": "y@2.1.0"},
        ],
    }
