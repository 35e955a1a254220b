"""Tests for transitive metric aggregation."""

import random

from conftest import build_graph, nid

from dep_inspector.analysis.aggregate import aggregate, find_cycles, reachable
from dep_inspector.models import LineCounts


def _counts(**loc):
    return {nid(name): LineCounts(loc=n, unsafe_loc=n // 10) for name, n in loc.items()}


class TestReachable:
    def test_excludes_start(self):
        adj = {"a": ["b"], "b": ["c"], "c": []}
        assert reachable(adj, "a") == {"b", "c"}

    def test_blocked_node_not_entered(self):
        adj = {"a": ["b", "c"], "b": ["d"], "c": [], "d": []}
        assert reachable(adj, "a", blocked="b") == {"c"}


class TestAggregate:
    def test_chain(self):
        graph = build_graph({"a": ["b"], "b": ["c"], "c": ["d"]}, ["a"])
        result = aggregate(graph, _counts(a=10, b=20, c=30, d=40))
        m = result.metrics[nid("a")]
        assert m.transitive_count == 3
        assert m.loc == 10
        assert m.dependencies_loc == 90
        assert m.total_loc == 100
        assert result.warnings == []

    def test_diamond_counts_shared_node_once(self):
        graph = build_graph({"a": ["b", "c"], "b": ["d"], "c": ["d"]}, ["a"])
        m = aggregate(graph, _counts(a=1, b=1, c=1, d=100)).metrics[nid("a")]
        assert m.transitive_count == 3
        assert m.dependencies_loc == 102
        assert m.direct_dependencies == ["b", "c"]

    def test_cycle_terminates(self):
        graph = build_graph({"a": ["b"], "b": ["c"], "c": ["a"]}, ["a"])
        m = aggregate(graph, _counts(a=1, b=2, c=3)).metrics[nid("a")]
        assert m.transitive_count == 2
        assert m.transitive_dependencies == ["b", "c"]

    def test_shared_dependency_counted_for_each_top_level(self):
        graph = build_graph({"x": ["y", "z"], "w": ["y"]}, ["x", "w"])
        metrics = aggregate(graph, _counts(x=100, y=10, z=5, w=50)).metrics
        assert metrics[nid("x")].transitive_count == 2
        assert metrics[nid("w")].transitive_count == 1
        assert metrics[nid("x")].total_loc == 115
        assert metrics[nid("w")].total_loc == 60

    def test_exclusive_dependencies(self):
        graph = build_graph({"x": ["y", "z"], "w": ["y"]}, ["x", "w"])
        metrics = aggregate(graph, _counts(x=1, y=1, z=1, w=1)).metrics
        assert metrics[nid("x")].exclusive_dependencies == ["z"]
        assert metrics[nid("w")].exclusive_dependencies == []

    def test_top_level_reached_through_another_is_not_exclusive(self):
        graph = build_graph({"x": ["w"], "w": ["v"]}, ["x", "w"])
        metrics = aggregate(graph, {}).metrics
        assert metrics[nid("x")].exclusive_dependencies == []

    def test_root_importers(self):
        graph = build_graph({"x": ["y"]}, ["x"])
        assert aggregate(graph, {}).metrics[nid("x")].root_importers == ["app"]

    def test_missing_counts_are_zero_and_warned_once(self):
        graph = build_graph({"x": ["y"], "w": ["y"]}, ["x", "w"])
        result = aggregate(graph, _counts(x=10, w=10))
        assert result.metrics[nid("x")].total_loc == 10
        assert [w.node_id for w in result.warnings] == [nid("y")]

    def test_unsafe_totals(self):
        graph = build_graph({"a": ["b"]}, ["a"])
        m = aggregate(graph, _counts(a=50, b=200)).metrics[nid("a")]
        assert m.total_unsafe_loc == 25

    def test_matches_brute_force_closure(self):
        rng = random.Random(7)
        names = [f"n{i}" for i in range(12)]
        for _ in range(25):
            links = {
                n: [m for m in names if m != n and rng.random() < 0.15] for n in names
            }
            top = rng.sample(names, 3)
            graph = build_graph(links, top)
            metrics = aggregate(graph, {}).metrics

            for t in top:
                closure = set()
                frontier = set(links[t])
                while frontier:
                    closure |= frontier
                    frontier = {m for f in frontier for m in links[f]} - closure
                closure.discard(t)
                assert metrics[nid(t)].transitive_count == len(closure)


class TestFindCycles:
    def test_detects_cycle(self):
        graph = build_graph({"a": ["b"], "b": ["a"]}, ["a"])
        cycles = find_cycles(graph)
        assert len(cycles) == 1
        assert set(cycles[0]) == {nid("a"), nid("b")}

    def test_acyclic(self):
        graph = build_graph({"a": ["b", "c"], "b": ["c"]}, ["a"])
        assert find_cycles(graph) == []
