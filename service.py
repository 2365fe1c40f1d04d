"""The clocked-in service: sequences clock operations over journeys, days and weeks."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum

from models import (
    MAX_HOURS_PER_JOURNEY,
    ClockedInError,
    DeltaHours,
    IncompleteWorkJourney,
    InterDayViolation,
    IntraDayViolation,
    LongTermRegistry,
    WorkDay,
    WorkJourney,
    WorkWeek,
)
from utils import same_work_day

logger = logging.getLogger(__name__)

RECOMMENDATION_TARGETS = (timedelta(hours=6), timedelta(hours=8), timedelta(hours=10))


class ClockedInServiceError(ClockedInError):
    """Base type for rejected clock operations."""


class JourneyAlreadyOpenError(ClockedInServiceError):
    """Raised when clocking in while a journey is already open."""

    def __init__(self, started_at: datetime):
        super().__init__(f"A work journey has already been started at {started_at:%Y-%m-%d %H:%M:%S}.")
        self.started_at = started_at


class NoOpenJourneyError(ClockedInServiceError):
    """Raised when clocking out with no journey in progress."""

    def __init__(self, message: str = "No work journey in progress."):
        super().__init__(message)


class ClockInConflictsWithRegistryError(ClockedInServiceError):
    """Raised when clocking in on the day the last archived week was closed."""

    def __init__(self, last_clock_out: datetime):
        super().__init__(
            f"Clock-in falls on {last_clock_out:%Y-%m-%d}, the last day of the last archived week."
        )
        self.last_clock_out = last_clock_out


class ClockInConflictsWithCurrentWeekError(ClockedInServiceError):
    """Raised when clocking in on a day already finished in the current week."""

    def __init__(self, last_clock_out: datetime):
        super().__init__(
            f"Clock-in falls on {last_clock_out:%Y-%m-%d}, a day already finished this week."
        )
        self.last_clock_out = last_clock_out


class JourneyState(Enum):
    IDLE = "idle"
    OPEN = "open"


@dataclass(frozen=True)
class JourneyRecommendation:
    """Suggested end of the open journey.

    `capped` means the target cannot be reached within one journey, so the
    end shown is the journey maximum rather than the target.
    """

    end: datetime
    capped: bool = False


@dataclass(frozen=True)
class LastViolations:
    """Violations of the most recently finished day and of its week."""

    scope: str
    weekday: str
    day_violations: frozenset[IntraDayViolation]
    week_violation: InterDayViolation | None

    @property
    def any(self) -> bool:
        return bool(self.day_violations) or self.week_violation is not None


@dataclass
class ClockedInService:
    """Owns the open journey, the day and week buffers and the registry.

    Every mutation goes through the clock_* methods. A rejected operation
    leaves the state untouched.
    """

    registry: LongTermRegistry = field(default_factory=LongTermRegistry)
    open_journey: IncompleteWorkJourney | None = None
    day_buffer: list[WorkJourney] = field(default_factory=list)
    current_week: WorkWeek | None = None

    @property
    def journey_state(self) -> JourneyState:
        return JourneyState.IDLE if self.open_journey is None else JourneyState.OPEN

    def clock_in(self, time: datetime) -> None:
        last_clock_out = self.registry.last_clock_out_last_week
        if last_clock_out is not None and same_work_day(time, last_clock_out):
            raise ClockInConflictsWithRegistryError(last_clock_out)

        if self.current_week is not None:
            last_clock_out = self.current_week.last_clock_out_last_day
            if last_clock_out is not None and same_work_day(time, last_clock_out):
                raise ClockInConflictsWithCurrentWeekError(last_clock_out)

        if self.open_journey is not None:
            raise JourneyAlreadyOpenError(self.open_journey.start)

        self.open_journey = IncompleteWorkJourney.open(time)
        logger.info("Clocked in at %s", time)

    def clock_out(self, time: datetime) -> None:
        if self.open_journey is None:
            raise NoOpenJourneyError()

        journey = self.open_journey.close(time)
        self.day_buffer.append(journey)
        self.open_journey = None
        logger.info("Clocked out at %s after %s", time, journey.duration)

    def clock_out_and_end_day(self, time: datetime) -> None:
        self.clock_out(time)

        day = WorkDay.from_journeys(self.day_buffer)
        self.day_buffer = []

        if self.current_week is None:
            self.current_week = WorkWeek()
        rested = self.current_week.violation is None
        self.current_week.append_day(day)
        logger.info("Ended work day %s with %s worked", day.date, day.total)

        for violation in sorted(day.violations, key=lambda v: v.value):
            logger.warning("%s %s", day.date, violation.description)
        if rested and self.current_week.violation is not None:
            logger.warning("%s %s", day.date, self.current_week.violation.description)

    def clock_out_and_end_week(self, time: datetime) -> None:
        self.clock_out_and_end_day(time)

        # end_day always leaves a week in place
        week = self.current_week
        self.registry.push_week(week)
        self.current_week = WorkWeek()

    def worked_delta_until_today(self) -> DeltaHours:
        """Cumulative delta of the registry plus the week in progress.

        An empty registry contributes zero here rather than failing.
        """
        delta = self.registry.cumulative_delta() if self.registry.history else DeltaHours()
        if self.current_week is not None:
            delta += self.current_week.delta()
        return delta

    def worked_hours_today(self) -> timedelta:
        return sum((journey.duration for journey in self.day_buffer), timedelta())

    def worked_hours_this_week(self) -> list[tuple[date, timedelta]]:
        if self.current_week is None:
            return []
        return [(day.first_clock_in.date(), day.total) for day in self.current_week.days]

    def recommended_journey_end(self, target: timedelta) -> JourneyRecommendation | None:
        """Project when the open journey should end for today's total to reach `target`."""
        if self.open_journey is None:
            return None

        start = self.open_journey.start
        remaining = target - self.worked_hours_today()
        if remaining > MAX_HOURS_PER_JOURNEY:
            return JourneyRecommendation(start + MAX_HOURS_PER_JOURNEY, capped=True)
        # Target already reached by earlier journeys: end right away.
        return JourneyRecommendation(start + max(remaining, timedelta()))

    def recommendations(self) -> list[tuple[timedelta, JourneyRecommendation | None]]:
        return [(target, self.recommended_journey_end(target)) for target in RECOMMENDATION_TARGETS]

    def _last_finished_day(self) -> tuple[str, WorkWeek, WorkDay] | None:
        if self.current_week is not None and self.current_week.days:
            return "This week", self.current_week, self.current_week.days[-1]
        if self.registry.history and self.registry.history[-1].days:
            week = self.registry.history[-1]
            return "Last week", week, week.days[-1]
        return None

    def has_finished_work_day(self, now: datetime) -> bool:
        last = self._last_finished_day()
        if last is None:
            return False
        _, _, day = last
        return same_work_day(now, day.last_clock_out)

    def last_violations(self) -> LastViolations | None:
        last = self._last_finished_day()
        if last is None:
            return None
        scope, week, day = last
        return LastViolations(
            scope=scope,
            weekday=day.last_clock_out.strftime("%a"),
            day_violations=day.violations,
            week_violation=week.violation,
        )
