"""Excel export of the work history."""

from __future__ import annotations

import logging
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Font

from models import WorkWeek
from service import ClockedInService
from utils import hours_decimal

logger = logging.getLogger(__name__)

HEADER_FONT = Font(bold=True)

DAY_COLUMNS = ["Week", "Date", "Day", "First in", "Last out", "Journeys", "Worked (h)", "Violations"]
WEEK_COLUMNS = ["Week", "Days", "Worked (h)", "Expected (h)", "Balance", "Inter-day rest"]


def _all_weeks(service: ClockedInService) -> list[WorkWeek]:
    """Archived weeks followed by the week in progress, if it has any days."""
    weeks = list(service.registry.history)
    if service.current_week is not None and service.current_week.days:
        weeks.append(service.current_week)
    return weeks


def _write_header(ws, columns: list[str]) -> None:
    for idx, name in enumerate(columns, start=1):
        ws.cell(row=1, column=idx, value=name).font = HEADER_FONT


def export_history(service: ClockedInService, path: str | Path) -> Path:
    """Write one row per finished day and one row per week to an .xlsx workbook."""
    wb = Workbook()
    days_ws = wb.active
    days_ws.title = "Days"
    weeks_ws = wb.create_sheet("Weeks")
    _write_header(days_ws, DAY_COLUMNS)
    _write_header(weeks_ws, WEEK_COLUMNS)

    for week_num, week in enumerate(_all_weeks(service), start=1):
        for day in week.days:
            violations = ", ".join(
                v.description for v in sorted(day.violations, key=lambda v: v.value)
            )
            days_ws.append([
                week_num,
                day.date,
                day.first_clock_in.strftime("%a"),
                day.first_clock_in.time(),
                day.last_clock_out.time(),
                len(day.journeys),
                hours_decimal(day.total),
                violations,
            ])

        weeks_ws.append([
            week_num,
            week.days_worked,
            hours_decimal(week.total_worked),
            hours_decimal(week.expected_hours()),
            str(week.delta()),
            week.violation.description if week.violation else "",
        ])

    path = Path(path)
    wb.save(path)
    logger.info("Exported %d days to %s", days_ws.max_row - 1, path)
    return path
