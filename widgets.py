"""Custom widgets for the clocked-in application."""

from __future__ import annotations

from datetime import datetime

from textual.widgets import Static
from rich.text import Text

import display
from service import ClockedInService


class StatusHeader(Static):
    """Shows the journey state on the left and the date on the right."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.now: datetime | None = None

    def update_display(self, service: ClockedInService, now: datetime):
        self.now = now
        status = display.status_text(service, now)
        date_str = now.strftime("%A %b %d, %Y")

        # Right-align the date against the 74 column layout
        spacing = 74 - len(status.plain) - len(date_str)
        text = Text()
        text.append_text(status)
        text.append(" " * max(spacing, 2))
        text.append(date_str, style="bold")

        self.update(text)


class DeltaSummary(Static):
    """Shows the cumulative balance and this week's hours."""

    def update_display(self, service: ClockedInService):
        text = Text()
        text.append_text(display.delta_text(service.worked_delta_until_today()))
        text.append("\n\n")
        text.append_text(display.week_hours_text(service))
        self.update(text)


class RecommendationPanel(Static):
    """Shows when to clock out to reach 6, 8 and 10 hours today."""

    def update_display(self, service: ClockedInService):
        text = Text()
        text.append("Recommended clock-out\n", style="bold")
        text.append_text(display.recommendations_text(service))
        self.update(text)


class ViolationsPanel(Static):
    """Shows violations of the most recently finished day and week."""

    def update_display(self, service: ClockedInService):
        self.update(display.violations_text(service.last_violations()))
