"""Semester week arithmetic and recurrence expansion."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum


class WeekType(str, Enum):
    ALL = "all"
    ODD = "odd"
    EVEN = "even"


class RepeatType(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    ONCE = "once"


@dataclass(frozen=True)
class SemesterCalendar:
    """Monday-aligned week grid of a semester.

    Week 1 is the week containing ``start_date``, or the following week when
    the semester starts on a weekend; the last week is the one containing
    ``end_date``. Odd-numbered weeks carry ``first_week_type`` and
    even-numbered weeks carry the opposite parity. Days of the grid that fall
    outside ``[start_date, end_date]`` are not part of the semester.
    """

    start_date: date
    end_date: date
    first_week_type: WeekType = WeekType.ODD

    def __post_init__(self) -> None:
        object.__setattr__(self, "first_week_type", WeekType(self.first_week_type))
        if self.end_date < self.start_date:
            raise ValueError("semester end_date must not precede start_date")
        if self.first_week_type == WeekType.ALL:
            raise ValueError("first_week_type must be odd or even")

    @property
    def first_monday(self) -> date:
        monday = self.start_date - timedelta(days=self.start_date.weekday())
        if self.start_date.weekday() >= 5:
            monday += timedelta(weeks=1)
        return monday

    @property
    def total_weeks(self) -> int:
        last_monday = self.end_date - timedelta(days=self.end_date.weekday())
        return max(0, (last_monday - self.first_monday).days // 7 + 1)

    def weeks(self) -> range:
        return range(1, self.total_weeks + 1)

    def contains_week(self, week: int) -> bool:
        return 1 <= week <= self.total_weeks

    def week_type(self, week: int) -> WeekType:
        if week % 2 == 1:
            return self.first_week_type
        return WeekType.EVEN if self.first_week_type == WeekType.ODD else WeekType.ODD

    def week_of(self, day: date) -> int | None:
        if day < self.start_date or day > self.end_date or day < self.first_monday:
            return None
        return (day - self.first_monday).days // 7 + 1

    def date_of(self, week: int, day_of_week: int) -> date:
        return self.first_monday + timedelta(weeks=week - 1, days=day_of_week - 1)

    def covers(self, week: int, day_of_week: int) -> bool:
        return self.contains_week(week) and self.start_date <= self.date_of(week, day_of_week) <= self.end_date


@dataclass(frozen=True)
class Recurrence:
    day_of_week: int
    week_type: WeekType = WeekType.ALL
    repeat_type: RepeatType = RepeatType.WEEKLY
    specific_date: date | None = None


def week_matches(week_type: WeekType, calendar: SemesterCalendar, week: int) -> bool:
    return week_type == WeekType.ALL or calendar.week_type(week) == week_type


def expand_recurrence(recurrence: Recurrence, calendar: SemesterCalendar) -> frozenset[tuple[int, int]]:
    """Return every ``(week_number, day_of_week)`` the recurrence occupies."""

    week_type = WeekType(recurrence.week_type)
    repeat_type = RepeatType(recurrence.repeat_type)

    if repeat_type == RepeatType.ONCE:
        if recurrence.specific_date is None:
            return frozenset()
        week = calendar.week_of(recurrence.specific_date)
        if week is None or not week_matches(week_type, calendar, week):
            return frozenset()
        return frozenset({(week, recurrence.specific_date.isoweekday())})

    if repeat_type == RepeatType.BIWEEKLY and week_type == WeekType.ALL:
        weeks = range(1, calendar.total_weeks + 1, 2)
    else:
        # A parity filter already yields every other week, so biweekly odd/even
        # entries start at the first matching week and share its parity.
        weeks = [week for week in calendar.weeks() if week_matches(week_type, calendar, week)]
    return frozenset((week, recurrence.day_of_week) for week in weeks)
