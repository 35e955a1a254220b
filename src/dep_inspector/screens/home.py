"""Home screen — choose the manifest or graph document to inspect."""

from pathlib import Path

from textual import on
from textual.app import ComposeResult
from textual.containers import Center, Vertical
from textual.screen import Screen
from textual.widgets import Button, Footer, Header, Input, Label, Static


class HomeScreen(Screen):
    """Initial screen collecting the path to analyze."""

    CSS = """
    HomeScreen {
        align: center middle;
    }
    #home-container {
        width: 72;
        height: auto;
        padding: 1 4;
        border: round $primary;
        background: $surface;
    }
    #title {
        text-align: center;
        text-style: bold;
        color: $accent;
    }
    #subtitle {
        text-align: center;
        color: $text-muted;
        margin-bottom: 2;
    }
    .field-label {
        margin-top: 1;
    }
    #start-btn {
        margin-top: 2;
        width: 100%;
    }
    #error-label {
        color: $error;
        text-align: center;
        margin-top: 1;
    }
    """

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Center():
            with Vertical(id="home-container"):
                yield Static("DEP INSPECTOR", id="title")
                yield Static(
                    "Transitive footprint · Code volume · Unsafe code · Repository health",
                    id="subtitle",
                )
                yield Label("Cargo.toml or dependency graph (.json):", classes="field-label")
                yield Input(placeholder="e.g. ./Cargo.toml", id="path-input")
                yield Button("▶  Start Inspection", id="start-btn", variant="primary")
                yield Label("", id="error-label")
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#path-input", Input).focus()

    @on(Button.Pressed, "#start-btn")
    def start_inspection(self) -> None:
        path_input = self.query_one("#path-input", Input)
        error_label = self.query_one("#error-label", Label)

        value = path_input.value.strip() or "Cargo.toml"
        if not Path(value).is_file():
            error_label.update(f"⚠  File not found: {value}")
            return
        error_label.update("")
        self.app.run_inspection(value)  # type: ignore[attr-defined]

    @on(Input.Submitted, "#path-input")
    def submit_on_enter(self) -> None:
        self.start_inspection()
