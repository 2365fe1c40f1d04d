"""Rich renderables for the clocked-in summary, shared by the CLI and the TUI."""

from __future__ import annotations

from datetime import datetime, timedelta

from rich.text import Text

from models import DeltaHours, HourState
from service import ClockedInService, JourneyRecommendation, JourneyState, LastViolations
from utils import format_duration


def delta_text(delta: DeltaHours) -> Text:
    """Delta line: red when hours are missing, green when exceeding."""
    if delta.seconds == 0:
        style = "bold"
    elif delta.state is HourState.DEBT:
        style = "bold red"
    else:
        style = "bold green"
    text = Text()
    text.append("Balance: ")
    text.append(str(delta), style=style)
    return text


def status_text(service: ClockedInService, now: datetime) -> Text:
    text = Text()
    if service.journey_state is JourneyState.OPEN:
        start = service.open_journey.start
        text.append("Clocked in", style="bold green")
        text.append(f" since {start:%H:%M}")
        if start.date() != now.date():
            text.append(f" on {start:%a %b %d}")
    elif service.has_finished_work_day(now):
        text.append("Work day finished", style="bold")
    else:
        text.append("Clocked out", style="bold yellow")
    text.append(f"   Today {format_duration(service.worked_hours_today())}")
    return text


def week_hours_text(service: ClockedInService) -> Text:
    text = Text()
    days = service.worked_hours_this_week()
    if not days:
        text.append("No finished days this week", style="dim")
        return text

    total = timedelta()
    for day, worked in days:
        text.append(f"{day:%a %b %d}  {format_duration(worked):>8}\n")
        total += worked
    text.append(f"{'Total':<10}  {format_duration(total):>8}", style="bold")
    return text


def recommendation_line(target: timedelta, recommendation: JourneyRecommendation | None) -> Text:
    text = Text()
    text.append(f"{format_duration(target):>7} target: ")
    if recommendation is None:
        text.append("no open journey", style="dim")
    elif recommendation.capped:
        text.append(f"{recommendation.end:%H:%M}", style="bold yellow")
        text.append(" (journey cap)", style="yellow")
    else:
        text.append(f"{recommendation.end:%H:%M}", style="bold")
    return text


def recommendations_text(service: ClockedInService) -> Text:
    return Text("\n").join(
        recommendation_line(target, recommendation)
        for target, recommendation in service.recommendations()
    )


def violations_text(violations: LastViolations | None) -> Text:
    """Violation lines in the wording of the policy, one per breach."""
    text = Text()
    if violations is None or not violations.any:
        text.append("No violations", style="dim")
        return text

    lines = []
    for violation in sorted(violations.day_violations, key=lambda v: v.value):
        lines.append(f"{violations.scope}: {violations.weekday} -> {violation.description}")
    if violations.week_violation is not None:
        lines.append(f"{violations.scope} -> {violations.week_violation.description}")
    text.append("\n".join(lines), style="bold red on bright_white")
    return text


def summary_text(service: ClockedInService, now: datetime) -> Text:
    """Everything the view command shows, in one renderable."""
    return Text("\n\n").join(
        [
            status_text(service, now),
            delta_text(service.worked_delta_until_today()),
            week_hours_text(service),
            recommendations_text(service),
            violations_text(service.last_violations()),
        ]
    )
