"""Tests for version deduplication."""

from dep_inspector.analysis.dedup import deduplicate, version_key
from dep_inspector.models import DependencyEdge, DependencyGraph, EdgeKind, PackageNode


def _graph():
    """app → {foo 1.0.0, bar}; bar → foo 0.9.0; foo 1.0.0 → baz."""
    nodes = [
        PackageNode(name="foo", version="1.0.0"),
        PackageNode(name="foo", version="0.9.0"),
        PackageNode(name="bar", version="2.0.0"),
        PackageNode(name="baz", version="0.1.0"),
    ]
    return DependencyGraph(
        root="app",
        nodes={n.node_id: n for n in nodes},
        edges=[
            DependencyEdge(source="app", target="foo@1.0.0", kind=EdgeKind.direct),
            DependencyEdge(source="app", target="bar@2.0.0", kind=EdgeKind.direct),
            DependencyEdge(source="bar@2.0.0", target="foo@0.9.0"),
            DependencyEdge(source="foo@1.0.0", target="baz@0.1.0"),
        ],
        top_level=["foo@1.0.0", "bar@2.0.0"],
        workspace_members=["app"],
    )


class TestVersionKey:
    def test_numeric_ordering(self):
        versions = ["1.0.0", "0.10.0", "0.9.0", "1.0.0-alpha", "0.9.1"]
        assert sorted(versions, key=version_key) == [
            "0.9.0",
            "0.9.1",
            "0.10.0",
            "1.0.0-alpha",
            "1.0.0",
        ]

    def test_build_metadata_ignored_for_order(self):
        assert version_key("1.2.0+build.5") < version_key("1.3.0")


class TestDeduplicate:
    def test_one_node_per_name(self):
        result = deduplicate(_graph())
        names = [n.name for n in result.graph.nodes.values()]
        assert sorted(names) == ["bar", "baz", "foo"]

    def test_lowest_version_kept_and_versions_merged(self):
        result = deduplicate(_graph())
        foo = result.graph.nodes["foo@0.9.0"]
        assert foo.versions == ["0.9.0", "1.0.0"]
        assert len(result.decisions) == 1
        decision = result.decisions[0]
        assert decision.name == "foo"
        assert decision.kept_version == "0.9.0"
        assert decision.merged_versions == ["1.0.0"]

    def test_edges_redirected(self):
        graph = deduplicate(_graph()).graph
        pairs = {(e.source, e.target, e.kind) for e in graph.edges}
        assert ("app", "foo@0.9.0", EdgeKind.direct) in pairs
        assert ("bar@2.0.0", "foo@0.9.0", EdgeKind.transitive) in pairs
        # the merged version's own dependencies now hang off the kept node
        assert ("foo@0.9.0", "baz@0.1.0", EdgeKind.transitive) in pairs
        assert all("foo@1.0.0" not in (s, t) for s, t, _ in pairs)
        assert graph.top_level == ["bar@2.0.0", "foo@0.9.0"]

    def test_numeric_not_lexical_choice(self):
        nodes = [PackageNode(name="x", version="0.10.0"), PackageNode(name="x", version="0.9.0")]
        graph = DependencyGraph(
            nodes={n.node_id: n for n in nodes},
            top_level=["x@0.10.0"],
        )
        assert list(deduplicate(graph).graph.nodes) == ["x@0.9.0"]

    def test_merge_drops_self_loops(self):
        nodes = [PackageNode(name="x", version="1.0.0"), PackageNode(name="x", version="2.0.0")]
        graph = DependencyGraph(
            nodes={n.node_id: n for n in nodes},
            edges=[DependencyEdge(source="x@2.0.0", target="x@1.0.0")],
            top_level=["x@2.0.0"],
        )
        assert deduplicate(graph).graph.edges == []

    def test_workspace_members_removed(self):
        graph = _graph()
        member = PackageNode(name="app", version="0.1.0")
        graph.nodes[member.node_id] = member
        graph.edges.append(DependencyEdge(source="bar@2.0.0", target="app@0.1.0"))

        result = deduplicate(graph)
        assert "app@0.1.0" not in result.graph.nodes
        assert all(e.target != "app@0.1.0" for e in result.graph.edges)

    def test_idempotent(self):
        once = deduplicate(_graph())
        twice = deduplicate(once.graph)
        assert twice.graph == once.graph
        assert twice.decisions == []
