"""Modal screens for the clocked-in application."""

from __future__ import annotations

from datetime import time

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, Input, Label
from textual.screen import ModalScreen

from utils import parse_clock_time


class ConfirmScreen(ModalScreen[bool]):
    """Simple confirmation dialog."""

    CSS = """
    ConfirmScreen {
        align: center middle;
    }

    #confirm-dialog {
        width: 50;
        height: auto;
        padding: 1 2;
        background: $surface;
        border: thick $warning;
    }

    #confirm-buttons {
        width: 100%;
        height: auto;
        margin-top: 1;
    }

    #confirm-buttons Button {
        width: 1fr;
        margin: 0 1;
    }
    """

    BINDINGS = [
        Binding("escape", "cancel", "Cancel"),
        Binding("y", "confirm", "Yes"),
        Binding("n", "cancel", "No"),
    ]

    def __init__(self, message: str):
        super().__init__()
        self.message = message

    def compose(self) -> ComposeResult:
        with Vertical(id="confirm-dialog"):
            yield Label(self.message)
            with Horizontal(id="confirm-buttons"):
                yield Button("Yes (Y)", variant="warning", id="yes")
                yield Button("No (N)", variant="default", id="no")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "yes")

    def action_confirm(self) -> None:
        self.dismiss(True)

    def action_cancel(self) -> None:
        self.dismiss(False)


class ClockTimeScreen(ModalScreen[time | None | bool]):
    """Asks for the time of a clock event.

    Dismisses with a time, with None for "now", or with False when cancelled.
    """

    CSS = """
    ClockTimeScreen {
        align: center middle;
    }

    #clock-dialog {
        width: 50;
        height: auto;
        padding: 1 2;
        background: $surface;
        border: thick $primary;
    }

    #clock-title {
        width: 100%;
        text-align: center;
        text-style: bold;
        margin-bottom: 1;
    }

    .field-label {
        height: 1;
        color: $text-muted;
    }

    #clock-buttons {
        width: 100%;
        height: auto;
        margin-top: 1;
        align: center middle;
    }

    #clock-buttons Button {
        width: auto;
        min-width: 12;
        margin: 0 2;
    }
    """

    BINDINGS = [
        Binding("escape", "cancel", "Cancel"),
    ]

    def __init__(self, title: str):
        super().__init__()
        self.title_text = title

    def compose(self) -> ComposeResult:
        with Vertical(id="clock-dialog"):
            yield Label(self.title_text, id="clock-title")
            yield Label("Time (HH:MM, blank for now)", classes="field-label")
            yield Input(placeholder="09:00", id="clock-time", max_length=8)
            with Horizontal(id="clock-buttons"):
                yield Button("OK", variant="primary", id="ok")
                yield Button("Cancel", variant="default", id="cancel")

    def on_mount(self) -> None:
        self.query_one("#clock-time", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self._submit(event.value)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "cancel":
            self.dismiss(False)
        elif event.button.id == "ok":
            self._submit(self.query_one("#clock-time", Input).value)

    def action_cancel(self) -> None:
        self.dismiss(False)

    def parse_value(self, value: str) -> time | None:
        """Parse the entered time, raising ValueError on malformed input."""
        return parse_clock_time(value)

    def _submit(self, value: str) -> None:
        try:
            clock_time = self.parse_value(value)
        except ValueError:
            self.app.notify("Invalid time. Use HH:MM", severity="error")
            return
        self.dismiss(clock_time)
