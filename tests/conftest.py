"""Shared fixtures for tests."""

from __future__ import annotations

import os
import tempfile
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Callable

import pytest

# Point the default store at a throwaway location before importing storage
_test_dir = tempfile.mkdtemp(prefix="clockedin-tests-")
os.environ["CLOCKEDIN_DB"] = str(Path(_test_dir) / "clockedin.db")


MONDAY = date(2026, 1, 26)


@pytest.fixture
def monday() -> date:
    """A fixed Monday; the week runs Jan 26 - Jan 30, 2026."""
    return MONDAY


@pytest.fixture
def at() -> Callable[..., datetime]:
    """Build a datetime on a weekday offset from the fixed Monday.

    at(0, 9) is Monday 09:00, at(4, 17, 30) is Friday 17:30.
    """

    def _at(day_offset: int, hour: int, minute: int = 0) -> datetime:
        return datetime.combine(MONDAY + timedelta(days=day_offset), time(hour, minute))

    return _at


@pytest.fixture
def service():
    """An empty service."""
    from service import ClockedInService

    return ClockedInService()


@pytest.fixture
def make_day(at):
    """Build a WorkDay from (start_hour, end_hour) pairs on a given day offset."""
    from models import WorkDay, WorkJourney

    def _make_day(day_offset: int, *spans: tuple[float, float]) -> WorkDay:
        journeys = []
        for start, end in spans:
            start_dt = at(day_offset, 0) + timedelta(hours=start)
            end_dt = at(day_offset, 0) + timedelta(hours=end)
            journeys.append(WorkJourney(start_dt, end_dt))
        return WorkDay.from_journeys(journeys)

    return _make_day


@pytest.fixture
def worked_week(service, at):
    """A service that has finished Monday to Wednesday with 7h days."""
    for offset in range(3):
        service.clock_in(at(offset, 8))
        service.clock_out(at(offset, 12))
        service.clock_in(at(offset, 13))
        service.clock_out_and_end_day(at(offset, 16))
    return service


@pytest.fixture
def json_store(tmp_path):
    from storage import JsonFileStateStore

    return JsonFileStateStore(tmp_path / "state.json")


@pytest.fixture
def sqlite_store(tmp_path):
    from storage import SqliteStateStore

    return SqliteStateStore(tmp_path / "state.db")
