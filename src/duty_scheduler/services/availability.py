"""Availability verdicts for (member, week, time slot) cells."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Literal

from duty_scheduler.services.recurrence import Recurrence, SemesterCalendar, expand_recurrence

AvailabilityStatus = Literal["available", "unavailable", "conflict"]
ReasonSource = Literal["course", "declared", "schedule"]


def parse_clock(value: str) -> int:
    """Convert ``HH:MM`` into minutes after midnight."""

    hours, _, minutes = value.partition(":")
    if not hours.isdigit() or not minutes.isdigit():
        raise ValueError(f"Invalid time value: {value!r}")
    total = int(hours) * 60 + int(minutes)
    if int(minutes) >= 60 or total > 24 * 60:
        raise ValueError(f"Invalid time value: {value!r}")
    return total


def intervals_overlap(start_a: str, end_a: str, start_b: str, end_b: str) -> bool:
    """Half-open interval overlap; touching endpoints do not overlap."""

    return parse_clock(start_a) < parse_clock(end_b) and parse_clock(start_b) < parse_clock(end_a)


@dataclass(frozen=True)
class SlotWindow:
    id: int
    name: str
    day_of_week: int
    start_time: str
    end_time: str


@dataclass(frozen=True)
class TimetableEntry:
    """A recurring busy interval: either a course or a declared unavailable time."""

    source: Literal["course", "declared"]
    recurrence: Recurrence
    start_time: str
    end_time: str
    label: str | None = None

    def describe(self) -> str:
        if self.source == "course":
            return f"Course conflict: {self.label}"
        if self.label:
            return f"Unavailable: {self.label}"
        return "Unavailable time"


@dataclass
class MemberTimetable:
    member_id: int
    entries: list[TimetableEntry] = field(default_factory=list)


@dataclass(frozen=True)
class AvailabilityReason:
    source: ReasonSource
    message: str


@dataclass(frozen=True)
class AvailabilityVerdict:
    status: AvailabilityStatus
    reasons: tuple[AvailabilityReason, ...] = ()

    @property
    def available(self) -> bool:
        return self.status == "available"

    def reasons_from(self, *sources: ReasonSource) -> list[AvailabilityReason]:
        return [reason for reason in self.reasons if reason.source in sources]


AVAILABLE = AvailabilityVerdict(status="available")


class AvailabilityResolver:
    """Resolve verdicts against one semester calendar.

    Expanded recurrences are memoised per entry, so repeated lookups across a
    full week x slot grid stay cheap. The resolver never touches storage.
    """

    def __init__(self, calendar: SemesterCalendar):
        self.calendar = calendar
        self._occurrences: dict[Recurrence, frozenset[tuple[int, int]]] = {}

    def _expand(self, recurrence: Recurrence) -> frozenset[tuple[int, int]]:
        occurrences = self._occurrences.get(recurrence)
        if occurrences is None:
            occurrences = expand_recurrence(recurrence, self.calendar)
            self._occurrences[recurrence] = occurrences
        return occurrences

    def resolve(self, timetable: MemberTimetable, slot: SlotWindow, week: int) -> AvailabilityVerdict:
        if not self.calendar.contains_week(week):
            raise ValueError(f"Week {week} is outside the semester (1..{self.calendar.total_weeks})")

        reasons: list[AvailabilityReason] = []
        for entry in timetable.entries:
            if (week, slot.day_of_week) not in self._expand(entry.recurrence):
                continue
            if intervals_overlap(entry.start_time, entry.end_time, slot.start_time, slot.end_time):
                reasons.append(AvailabilityReason(source=entry.source, message=entry.describe()))

        if not reasons:
            return AVAILABLE
        return AvailabilityVerdict(status="unavailable", reasons=tuple(reasons))

    def resolve_many(
        self,
        timetables: Iterable[MemberTimetable],
        slots: Iterable[SlotWindow],
        weeks: Iterable[int],
    ) -> dict[tuple[int, int, int], AvailabilityVerdict]:
        """Build the ``(member_id, week, slot_id)`` availability matrix."""

        slots = list(slots)
        weeks = list(weeks)
        matrix: dict[tuple[int, int, int], AvailabilityVerdict] = {}
        for timetable in timetables:
            for week in weeks:
                for slot in slots:
                    matrix[(timetable.member_id, week, slot.id)] = self.resolve(timetable, slot, week)
        return matrix
