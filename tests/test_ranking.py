"""Tests for risk scoring and ranking."""

import pytest
from pydantic import ValidationError

from dep_inspector.analysis.ranking import ScoreWeights, compute_score, rank
from dep_inspector.models import RiskEntry


def _entry(name, transitive=0, aggregate_loc=0, aggregate_unsafe_loc=0, version="1.0.0"):
    return RiskEntry(
        name=name,
        version=version,
        transitive_count=transitive,
        aggregate_loc=aggregate_loc,
        aggregate_unsafe_loc=aggregate_unsafe_loc,
    )


class TestComputeScore:
    def test_weighted_sum(self):
        weights = ScoreWeights(transitive=2, loc=0.5, unsafe_loc=3)
        assert compute_score(_entry("a", 4, 100, 10), weights) == 8 + 50 + 30

    def test_non_decreasing_in_each_metric(self):
        weights = ScoreWeights()
        base = compute_score(_entry("a", 5, 500, 5), weights)
        assert compute_score(_entry("a", 6, 500, 5), weights) >= base
        assert compute_score(_entry("a", 5, 501, 5), weights) >= base
        assert compute_score(_entry("a", 5, 500, 6), weights) >= base

    def test_negative_weight_rejected(self):
        with pytest.raises(ValidationError):
            ScoreWeights(loc=-1)


class TestRank:
    def test_loc_dominant_weights(self):
        a = _entry("a", transitive=10, aggregate_loc=1000)
        b = _entry("b", transitive=5, aggregate_loc=5000)
        ranked = rank([a, b], ScoreWeights(transitive=1, loc=1, unsafe_loc=0))
        assert [e.name for e in ranked] == ["b", "a"]

    def test_transitive_dominant_weights(self):
        a = _entry("a", transitive=10, aggregate_loc=1000)
        b = _entry("b", transitive=5, aggregate_loc=5000)
        ranked = rank([a, b], ScoreWeights(transitive=1000, loc=0.001, unsafe_loc=0))
        assert [e.name for e in ranked] == ["a", "b"]

    def test_ties_break_by_name(self):
        entries = [_entry("zeta", 1), _entry("alpha", 1), _entry("mid", 1)]
        assert [e.name for e in rank(entries)] == ["alpha", "mid", "zeta"]

    def test_deterministic_regardless_of_input_order(self):
        entries = [_entry(n, t, loc) for n, t, loc in [("a", 1, 10), ("b", 3, 0), ("c", 1, 10)]]
        assert rank(entries) == rank(list(reversed(entries)))

    def test_scores_attached(self):
        ranked = rank([_entry("a", 2, 100)])
        assert ranked[0].score == pytest.approx(21.0)

    def test_own_code_does_not_count(self):
        lean = _entry("lean", transitive=1, aggregate_loc=10)
        heavy_self = lean.model_copy(update={"name": "heavy", "loc": 90000, "total_loc": 90010})
        ranked = rank([heavy_self, lean])
        assert ranked[0].score == ranked[1].score
        assert [e.name for e in ranked] == ["heavy", "lean"]
