"""Results screen — ranked dependencies, collapsed versions, diagnostics."""

from textual.app import ComposeResult
from textual.containers import VerticalScroll
from textual.screen import Screen
from textual.widgets import (
    DataTable,
    Footer,
    Header,
    Label,
    Markdown,
    Static,
    TabbedContent,
    TabPane,
)

from dep_inspector.models import RiskEntry, RiskReport


def _fmt_optional(value: object) -> str:
    return "—" if value is None else str(value)


class ResultsScreen(Screen):
    """Tabbed display of a RiskReport."""

    CSS = """
    ResultsScreen {
        layout: vertical;
    }
    #results-header {
        height: 3;
        background: $primary;
        color: $text;
        text-align: center;
        padding: 1 2;
        text-style: bold;
    }
    .section-title {
        text-style: bold;
        margin: 1 0;
        color: $secondary;
    }
    #ranking-table {
        height: auto;
        margin: 1 0;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("b", "go_back", "Back"),
    ]

    def __init__(self, report: RiskReport, **kwargs) -> None:  # type: ignore[no-untyped-def]
        super().__init__(**kwargs)
        self.report = report

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield Static(
            f"  📦  {self.report.root}  ·  {len(self.report.entries)} top-level  ·  "
            f"{self.report.total_dependencies} packages  ",
            id="results-header",
        )
        with TabbedContent("📊 Ranking", "🔀 Versions", "⚠ Diagnostics"):
            with TabPane("📊 Ranking"):
                yield from self._compose_ranking()
            with TabPane("🔀 Versions"):
                yield from self._compose_versions()
            with TabPane("⚠ Diagnostics"):
                yield from self._compose_diagnostics()
        yield Footer()

    # ── Ranking tab ───────────────────────────────────────────────────────

    def _compose_ranking(self) -> ComposeResult:
        with VerticalScroll():
            yield Static("RISK RANKING", classes="section-title")
            if not self.report.entries:
                yield Markdown("> _No third-party dependencies found._")
                return
            table = DataTable(id="ranking-table")
            table.add_columns(
                "#", "Dependency", "Version", "Score", "Transitive",
                "Exclusive", "Aggregate LOC", "Aggregate unsafe", "Total LOC", "Stars",
                "Active devs", "Repository",
            )
            for i, e in enumerate(self.report.entries, start=1):
                table.add_row(*self._ranking_row(i, e))
            yield table

    @staticmethod
    def _ranking_row(i: int, e: RiskEntry) -> list[str]:
        enrichment = e.enrichment
        return [
            str(i),
            e.name,
            e.version,
            f"{e.score:.1f}",
            str(e.transitive_count),
            str(len(e.exclusive_dependencies)),
            str(e.aggregate_loc),
            str(e.aggregate_unsafe_loc),
            str(e.total_loc),
            _fmt_optional(enrichment.stargazers_count if enrichment else None),
            _fmt_optional(enrichment.active_contributors if enrichment else None),
            str(e.repository) if e.repository else "—",
        ]

    # ── Versions tab ──────────────────────────────────────────────────────

    def _compose_versions(self) -> ComposeResult:
        with VerticalScroll():
            yield Static("COLLAPSED VERSIONS", classes="section-title")
            if not self.report.dedup_decisions:
                yield Markdown("> _Every dependency is pulled in a single version._")
                return
            yield Label(
                "Only the lowest version of each dependency is analyzed; "
                "the others are merged into it."
            )
            for d in self.report.dedup_decisions:
                yield Markdown(
                    f"- **{d.name}** kept `{d.kept_version}`, merged "
                    + ", ".join(f"`{v}`" for v in d.merged_versions)
                )

    # ── Diagnostics tab ───────────────────────────────────────────────────

    def _compose_diagnostics(self) -> ComposeResult:
        r = self.report
        with VerticalScroll():
            yield Static("LOOKUPS", classes="section-title")
            s = r.cache_stats
            yield Label(
                f"Queries: {s.queries}  ·  Cache hits: {s.hits}  ·  "
                f"Coalesced: {s.coalesced}  ·  Retries: {s.retries}  ·  Failures: {s.failures}"
            )
            for f in r.enrichment_failures:
                yield Label(f"❌ {f}")

            yield Static("UNRESOLVED REPOSITORIES", classes="section-title")
            if not r.unresolved_repositories:
                yield Label("None")
            for u in r.unresolved_repositories:
                yield Label(f"• {u.dependency}: {u.reason}")

            yield Static("MISSING LINE COUNTS", classes="section-title")
            if not r.metric_warnings:
                yield Label("None")
            for w in r.metric_warnings:
                yield Label(f"• {w.node_id}: {w.reason}")

    def action_go_back(self) -> None:
        self.app.pop_screen()
