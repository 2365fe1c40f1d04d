#!/usr/bin/env python3
"""Clocked-in TUI application."""

from __future__ import annotations

import logging
from datetime import datetime, time
from typing import Callable

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.widgets import DataTable, Footer

import storage
from models import ClockedInError
from screens import ClockTimeScreen, ConfirmScreen
from service import ClockedInService
from utils import format_duration, resolve_clock_time
from widgets import DeltaSummary, RecommendationPanel, StatusHeader, ViolationsPanel

logger = logging.getLogger(__name__)

# Service operation name -> label shown in dialogs and notifications
OPERATIONS = {
    "clock_in": "Clock in",
    "clock_out": "Clock out",
    "clock_out_and_end_day": "Clock out and end day",
    "clock_out_and_end_week": "Clock out and end week",
}


class ClockedInApp(App):
    """Interactive clock-in/clock-out loop."""

    CSS = """
    Screen {
        background: $surface;
    }

    #status-header {
        height: auto;
        background: $primary;
        color: $text;
        padding: 0 1;
        text-style: bold;
    }

    #week-table {
        height: auto;
        max-height: 9;
        margin: 1 2;
    }

    #panels {
        height: auto;
    }

    #delta-summary, #recommendations {
        width: 1fr;
        height: auto;
        padding: 1 2;
        color: $text;
    }

    #violations {
        height: auto;
        padding: 0 2;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("i", "clock_in", "Clock in"),
        Binding("o", "clock_out", "Clock out"),
        Binding("d", "end_day", "End day"),
        Binding("w", "end_week", "End week"),
        Binding("v", "view", "View"),
    ]

    def __init__(
        self,
        store: storage.StateStore | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        super().__init__()
        self.store = store if store is not None else storage.get_store()
        self.clock = clock
        self.service: ClockedInService = storage.load_service(self.store)

    def compose(self) -> ComposeResult:
        yield StatusHeader(id="status-header")
        yield Container(DataTable(id="week-table"), id="week-table-container")
        with Horizontal(id="panels"):
            yield DeltaSummary(id="delta-summary")
            yield RecommendationPanel(id="recommendations")
        yield ViolationsPanel(id="violations")
        yield Footer()

    def on_mount(self):
        self._setup_week_table()
        self._refresh_display()
        self.query_one("#week-table", DataTable).focus()

    def _setup_week_table(self):
        table = self.query_one("#week-table", DataTable)
        table.cursor_type = "row"
        table.add_column("Day", width=4)
        table.add_column("Date", width=8)
        table.add_column("In", width=7)
        table.add_column("Out", width=7)
        table.add_column("Jrn", width=4)
        table.add_column("Worked", width=8)
        table.add_column("Violations", width=34)

    def week_rows(self) -> list[tuple[str, ...]]:
        """Rows for the days finished so far this week."""
        week = self.service.current_week
        if week is None:
            return []

        rows = []
        for day in week.days:
            violations = ", ".join(
                v.value.replace("_", " ") for v in sorted(day.violations, key=lambda v: v.value)
            )
            rows.append((
                day.first_clock_in.strftime("%a"),
                day.first_clock_in.strftime("%b %d"),
                day.first_clock_in.strftime("%H:%M"),
                day.last_clock_out.strftime("%H:%M"),
                str(len(day.journeys)),
                format_duration(day.total),
                violations,
            ))
        return rows

    def _refresh_display(self):
        now = self.clock()
        self.query_one("#status-header", StatusHeader).update_display(self.service, now)
        self.query_one("#delta-summary", DeltaSummary).update_display(self.service)
        self.query_one("#recommendations", RecommendationPanel).update_display(self.service)
        self.query_one("#violations", ViolationsPanel).update_display(self.service)

        table = self.query_one("#week-table", DataTable)
        table.clear()
        for row in self.week_rows():
            table.add_row(*row)

    def perform(self, operation: str, clock_time: time | None = None) -> bool:
        """Run one service operation at the given time of day and persist the result.

        Rejected operations are reported as notifications and leave the state
        unchanged. A failed save is fatal and exits the app.
        """
        when = resolve_clock_time(clock_time, self.clock())
        try:
            getattr(self.service, operation)(when)
        except ClockedInError as exc:
            logger.info("%s rejected: %s", OPERATIONS[operation], exc)
            self.notify(str(exc), severity="error")
            return False

        try:
            storage.save_service(self.store, self.service)
        except storage.StorageError as exc:
            logger.error("Unable to save state to %s: %s", self.store.path, exc)
            self.exit(return_code=2, message=str(exc))
            return False

        self._refresh_display()
        self.notify(f"{OPERATIONS[operation]} at {when:%H:%M}")
        return True

    def _ask_time(self, operation: str) -> None:
        def on_time(result: time | None | bool) -> None:
            if result is False:
                return
            self.perform(operation, result)

        self.push_screen(ClockTimeScreen(OPERATIONS[operation]), on_time)

    def action_clock_in(self) -> None:
        self._ask_time("clock_in")

    def action_clock_out(self) -> None:
        self._ask_time("clock_out")

    def action_end_day(self) -> None:
        self._ask_time("clock_out_and_end_day")

    def action_end_week(self) -> None:
        def on_confirm(confirmed: bool | None) -> None:
            if confirmed:
                self._ask_time("clock_out_and_end_week")

        self.push_screen(ConfirmScreen("Close the current week and archive it?"), on_confirm)

    def action_view(self) -> None:
        self._refresh_display()


def run_app(store: storage.StateStore | None = None) -> int:
    app = ClockedInApp(store)
    app.run()
    return app.return_code or 0


if __name__ == "__main__":
    raise SystemExit(run_app())
