"""Work-time accounting model: journeys, days, weeks and the long-term registry."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterable

logger = logging.getLogger(__name__)

MIN_HOURS_PER_DAY = timedelta(hours=6)
MAX_HOURS_PER_DAY = timedelta(hours=10)
MAX_JOURNEYS_PER_DAY = 5
MIN_INTER_JOURNEY_REST = timedelta(hours=1)
MIN_INTER_DAY_REST = timedelta(hours=11)
MAX_DAYS_PER_WEEK = 5
EXPECTED_HOURS_PER_DAY = 8
MAX_HOURS_PER_JOURNEY = timedelta(hours=6)


class ClockedInError(Exception):
    """Base type for all work-time accounting errors."""


class InvalidIntervalError(ClockedInError):
    """Raised when a journey would end before it started."""

    def __init__(self, start: datetime, end: datetime):
        super().__init__(
            f"Invalid clock-in and clock-out boundaries: "
            f"{end:%Y-%m-%d %H:%M:%S} is before {start:%Y-%m-%d %H:%M:%S}."
        )
        self.start = start
        self.end = end


class EmptyHistoryError(ClockedInError):
    """Raised when the registry is asked for a delta with no weeks recorded."""

    def __init__(self, message: str = "Empty history."):
        super().__init__(message)


class IntegerConversionError(ClockedInError):
    """Raised when the expected hours of a week cannot be represented."""

    def __init__(self, message: str = "Expected hours overflowed."):
        super().__init__(message)


class HourState(Enum):
    """Sign of a delta: hours still owed, or hours worked beyond expectation."""

    DEBT = "debt"
    CREDIT = "credit"


@dataclass
class DeltaHours:
    """Signed difference between expected and worked time, in whole seconds.

    A positive total means hours are missing (debt), a negative total means
    hours were exceeded (credit). Zero is reported as debt.
    """

    seconds: int = 0

    @classmethod
    def from_timedelta(cls, delta: timedelta) -> DeltaHours:
        return cls(int(delta.total_seconds()))

    @property
    def magnitude(self) -> int:
        return abs(self.seconds)

    @property
    def state(self) -> HourState:
        return HourState.DEBT if self.seconds >= 0 else HourState.CREDIT

    def __iadd__(self, other: DeltaHours) -> DeltaHours:
        self.seconds += other.seconds
        return self

    def __add__(self, other: DeltaHours) -> DeltaHours:
        return DeltaHours(self.seconds + other.seconds)

    def __str__(self) -> str:
        hours, rest = divmod(self.magnitude, 3600)
        minutes, seconds = divmod(rest, 60)
        amount = f"{hours} hours, {minutes} minutes, {seconds} seconds"
        if self.seconds == 0:
            return "No missing or exceeding hours"
        if self.state is HourState.DEBT:
            return f"Missing {amount}"
        return f"Exceeding {amount}"


@dataclass(frozen=True)
class WorkJourney:
    """A closed clock-in to clock-out interval."""

    start: datetime
    end: datetime

    def __post_init__(self):
        if self.end < self.start:
            raise InvalidIntervalError(self.start, self.end)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


@dataclass(frozen=True)
class IncompleteWorkJourney:
    """A journey that has been clocked in but not yet clocked out."""

    start: datetime

    @classmethod
    def open(cls, start: datetime) -> IncompleteWorkJourney:
        return cls(start)

    def close(self, end: datetime) -> WorkJourney:
        """Close the journey at `end`, raising InvalidIntervalError if it precedes the start."""
        return WorkJourney(self.start, end)


class IntraDayViolation(Enum):
    """Policy breaches detected within a single work day."""

    MISSING_HOURS = "missing_hours"
    EXCEEDED_MAX_HOURS = "exceeded_max_hours"
    EXCEEDED_MAX_JOURNEYS = "exceeded_max_journeys"
    VIOLATED_INTER_JOURNEY_REST = "violated_inter_journey_rest"

    @property
    def description(self) -> str:
        return {
            IntraDayViolation.MISSING_HOURS: "Worked less than 6 hours.",
            IntraDayViolation.EXCEEDED_MAX_HOURS: "Worked more than 10 hours.",
            IntraDayViolation.EXCEEDED_MAX_JOURNEYS: "Worked more than 5 journeys.",
            IntraDayViolation.VIOLATED_INTER_JOURNEY_REST: "Inter-journey rest was violated!",
        }[self]


class InterDayViolation(Enum):
    """Policy breaches detected across the days of a week."""

    INTER_DAY_REST_VIOLATION = "inter_day_rest_violation"

    @property
    def description(self) -> str:
        return "Inter-day rest was violated!"


def detect_intra_day_violations(
    journeys: tuple[WorkJourney, ...], total: timedelta
) -> frozenset[IntraDayViolation]:
    """Evaluate the daily policy rules over a finished batch of journeys."""
    violations: set[IntraDayViolation] = set()

    if total < MIN_HOURS_PER_DAY:
        violations.add(IntraDayViolation.MISSING_HOURS)
    elif total > MAX_HOURS_PER_DAY:
        violations.add(IntraDayViolation.EXCEEDED_MAX_HOURS)

    if len(journeys) > MAX_JOURNEYS_PER_DAY:
        violations.add(IntraDayViolation.EXCEEDED_MAX_JOURNEYS)

    # A single sufficient break satisfies the rest rule for the whole day.
    # With fewer than two journeys there is no break at all.
    if total >= MIN_HOURS_PER_DAY:
        rested = any(
            following.start - current.end >= MIN_INTER_JOURNEY_REST
            for current, following in zip(journeys, journeys[1:])
        )
        if not rested:
            violations.add(IntraDayViolation.VIOLATED_INTER_JOURNEY_REST)

    return frozenset(violations)


@dataclass(frozen=True)
class WorkDay:
    """The closed journeys of one calendar day, with derived totals and violations."""

    journeys: tuple[WorkJourney, ...]
    total: timedelta
    violations: frozenset[IntraDayViolation]

    @classmethod
    def from_journeys(cls, journeys: Iterable[WorkJourney]) -> WorkDay:
        journeys = tuple(journeys)
        total = sum((journey.duration for journey in journeys), timedelta())
        violations = detect_intra_day_violations(journeys, total)
        return cls(journeys=journeys, total=total, violations=violations)

    @property
    def first_clock_in(self) -> datetime:
        return self.journeys[0].start

    @property
    def last_clock_out(self) -> datetime:
        return self.journeys[-1].end

    @property
    def date(self) -> date:
        return self.first_clock_in.date()


@dataclass
class WorkWeek:
    """Up to five finished work days, in chronological order."""

    days: list[WorkDay] = field(default_factory=list)
    violation: InterDayViolation | None = None

    def append_day(self, day: WorkDay) -> None:
        """Append a day and re-evaluate inter-day rest over the whole week.

        A sixth day is dropped. The violation flag is never cleared once set.
        """
        if len(self.days) >= MAX_DAYS_PER_WEEK:
            logger.warning("Week already holds %d days, dropping day %s", MAX_DAYS_PER_WEEK, day.date)
        else:
            self.days.append(day)

        for previous, following in zip(self.days, self.days[1:]):
            if following.first_clock_in - previous.last_clock_out < MIN_INTER_DAY_REST:
                self.violation = InterDayViolation.INTER_DAY_REST_VIOLATION

    @property
    def days_worked(self) -> int:
        return len(self.days)

    @property
    def total_worked(self) -> timedelta:
        return sum((day.total for day in self.days), timedelta())

    def expected_hours(self) -> timedelta:
        try:
            return timedelta(hours=self.days_worked * EXPECTED_HOURS_PER_DAY)
        except OverflowError as exc:
            raise IntegerConversionError() from exc

    def delta(self) -> DeltaHours:
        """Expected minus worked time: debt when short, credit when over."""
        return DeltaHours.from_timedelta(self.expected_hours() - self.total_worked)

    @property
    def last_clock_out_last_day(self) -> datetime | None:
        if not self.days:
            return None
        return self.days[-1].last_clock_out


@dataclass
class LongTermRegistry:
    """Append-only history of closed weeks."""

    history: list[WorkWeek] = field(default_factory=list)

    def push_week(self, week: WorkWeek) -> None:
        self.history.append(week)
        logger.info("Archived week %d with %d days", len(self.history), week.days_worked)

    @property
    def total_worked(self) -> timedelta:
        return sum((week.total_worked for week in self.history), timedelta())

    def cumulative_delta(self) -> DeltaHours:
        if not self.history:
            raise EmptyHistoryError()

        delta = DeltaHours()
        for week in self.history:
            delta += week.delta()
        return delta

    @property
    def last_clock_out_last_week(self) -> datetime | None:
        if not self.history:
            return None
        return self.history[-1].last_clock_out_last_day
