"""Loading screen — one line per pipeline step while the inspection runs."""

from textual.app import ComposeResult
from textual.containers import Center, Vertical
from textual.screen import Screen
from textual.widgets import Footer, Header, Label, ProgressBar, Static


class LoadingScreen(Screen):
    """Checklist of the inspection steps reported so far."""

    BINDINGS = [
        ("b", "go_back", "Back"),
    ]

    CSS = """
    LoadingScreen {
        align: center middle;
    }
    #loading-container {
        width: 76;
        height: auto;
        padding: 1 3;
        border: round $primary;
        background: $surface;
    }
    #loading-title {
        text-align: center;
        text-style: bold;
        margin-bottom: 1;
    }
    #steps {
        height: auto;
        margin: 1 0;
    }
    .step-active {
        text-style: bold;
    }
    .step-done {
        color: $success;
    }
    .step-failed {
        color: $error;
    }
    #error-label {
        color: $text-muted;
    }
    """

    def __init__(self, total_steps: int = 7, **kwargs) -> None:  # type: ignore[no-untyped-def]
        super().__init__(**kwargs)
        self.total_steps = total_steps
        self._messages: list[str] = []
        self._labels: list[Label] = []

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Center():
            with Vertical(id="loading-container"):
                yield Static("🔍  Inspecting dependencies …", id="loading-title")
                yield ProgressBar(total=self.total_steps, show_eta=False, id="progress-bar")
                yield Vertical(id="steps")
                yield Label("", id="error-label")
        yield Footer()

    def _close_step(self, mark: str, css_class: str) -> None:
        if not self._labels:
            return
        label = self._labels[-1]
        label.update(f"{mark} {self._messages[-1]}")
        label.remove_class("step-active")
        label.add_class(css_class)

    def advance(self, message: str) -> None:
        """Mark the running step finished and start ``message``."""
        self._close_step("✔", "step-done")
        label = Label(f"… {message}", classes="step-active")
        self._messages.append(message)
        self._labels.append(label)
        self.query_one("#steps", Vertical).mount(label)
        self.query_one("#progress-bar", ProgressBar).update(
            progress=min(len(self._messages), self.total_steps)
        )

    def finish(self) -> None:
        self._close_step("✔", "step-done")
        self.query_one("#progress-bar", ProgressBar).update(progress=self.total_steps)

    def fail(self, error: str) -> None:
        """Flag the running step as failed and offer to go back."""
        self._close_step("✘", "step-failed")
        self.query_one("#error-label", Label).update(
            f"❌ {error}\nPress [b]  b  [/b] to go back and try again."
        )

    def action_go_back(self) -> None:
        """Return to the home screen."""
        self.app.pop_screen()
