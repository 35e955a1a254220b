"""Main Textual TUI application for dep-inspector."""

from typing import Optional

from textual.app import App

from dep_inspector.analyzer import Analyzer
from dep_inspector.config import InspectorConfig
from dep_inspector.errors import FatalGraphError
from dep_inspector.models import RiskReport
from dep_inspector.screens.home import HomeScreen
from dep_inspector.screens.loading import LoadingScreen
from dep_inspector.screens.results import ResultsScreen


class DepInspectorApp(App):
    """TUI application showing a dependency risk report."""

    TITLE = "Dep Inspector"
    SUB_TITLE = "Third-party dependency risk"

    CSS = """
    Screen {
        background: $background;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        path: Optional[str] = None,
        config: Optional[InspectorConfig] = None,
        packages: Optional[list[str]] = None,
        ignore: Optional[list[str]] = None,
    ) -> None:
        super().__init__()
        self.path = path
        self.config = config
        self.packages = packages
        self.ignore = ignore

    def on_mount(self) -> None:
        self.push_screen(HomeScreen())
        if self.path:
            self.run_inspection(self.path)

    def run_inspection(self, path: str) -> None:
        """Kick off the inspection — called from HomeScreen or on startup."""
        loading = LoadingScreen()
        self.push_screen(loading)

        async def _do_work() -> None:
            def on_status(msg: str) -> None:
                self.call_from_thread(loading.advance, msg)

            analyzer = Analyzer(config=self.config, on_status=on_status)
            try:
                report = await analyzer.inspect(
                    path, packages=self.packages, ignore=self.ignore
                )
                self.call_from_thread(loading.finish)
                self.call_from_thread(self._show_results, report)
            except FatalGraphError as e:
                self.call_from_thread(
                    loading.fail, f"Could not load the dependency graph: {e}"
                )
            finally:
                await analyzer.close()

        self.run_worker(_do_work(), thread=True)

    def _show_results(self, report: RiskReport) -> None:
        """Replace loading screen with results."""
        self.pop_screen()
        self.push_screen(ResultsScreen(report))
