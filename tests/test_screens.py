"""Tests for TUI screen helpers."""

from dep_inspector.models import CanonicalRepository, EnrichmentRecord, RiskEntry
from dep_inspector.screens.results import ResultsScreen


class TestRankingRow:
    def test_enriched_entry(self):
        repo = CanonicalRepository(host="github.com", owner="tokio-rs", name="tokio")
        entry = RiskEntry(
            name="tokio",
            version="1.32.0",
            transitive_count=12,
            exclusive_dependencies=["mio", "socket2"],
            aggregate_loc=85000,
            aggregate_unsafe_loc=1200,
            total_loc=90000,
            total_unsafe_loc=1200,
            repository=repo,
            enrichment=EnrichmentRecord(
                repository=repo, stargazers_count=24000, active_contributors=41
            ),
            score=2220.0,
        )
        assert ResultsScreen._ranking_row(1, entry) == [
            "1", "tokio", "1.32.0", "2220.0", "12", "2", "85000", "1200", "90000",
            "24000", "41", "github.com/tokio-rs/tokio",
        ]

    def test_missing_enrichment(self):
        row = ResultsScreen._ranking_row(3, RiskEntry(name="a", version="0.1.0"))
        assert row[-3:] == ["—", "—", "—"]
