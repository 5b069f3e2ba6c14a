from __future__ import annotations

from dataclasses import dataclass, field
from time import perf_counter
from typing import Literal

from duty_scheduler.core.exceptions import ConfigurationError, SchedulerTimeoutError
from duty_scheduler.services.availability import (
    AvailabilityResolver,
    AvailabilityVerdict,
    MemberTimetable,
    SlotWindow,
    parse_clock,
)
from duty_scheduler.services.recurrence import SemesterCalendar
from duty_scheduler.services.rules import (
    AssignmentState,
    CandidateProfile,
    RuleCode,
    RuleContext,
    RuleSet,
)


@dataclass
class SchedulingCandidate:
    member_id: int
    name: str
    department_id: int | None = None
    timetable: MemberTimetable | None = None

    @property
    def profile(self) -> CandidateProfile:
        return CandidateProfile(member_id=self.member_id, name=self.name, department_id=self.department_id)


@dataclass
class SchedulingContext:
    calendar: SemesterCalendar
    slots: list[SlotWindow]
    candidates: list[SchedulingCandidate]
    rules: RuleSet
    location_id: int | None = None
    time_limit_seconds: float | None = None


@dataclass
class SchedulingWarning:
    code: str
    message: str
    severity: Literal["info", "warning", "critical"] = "warning"
    week_number: int | None = None
    time_slot_id: int | None = None
    member_id: int | None = None
    meta: dict[str, str | int | float] = field(default_factory=dict)


@dataclass
class PlannedAssignment:
    week_number: int
    time_slot_id: int
    member_id: int | None
    location_id: int | None = None
    score: float | None = None


@dataclass
class SchedulingResult:
    assignments: list[PlannedAssignment]
    warnings: list[SchedulingWarning] = field(default_factory=list)
    engine: str = "heuristic"
    status: str = "ok"
    duration_ms: int | None = None
    meta: dict | None = None

    @property
    def total_slots(self) -> int:
        return len(self.assignments)

    @property
    def filled_slots(self) -> int:
        return sum(1 for assignment in self.assignments if assignment.member_id is not None)


def describe_slot(slot: SlotWindow, week: int) -> str:
    return f"{slot.name} (week {week}, day {slot.day_of_week} {slot.start_time}-{slot.end_time})"


def slot_sort_key(slot: SlotWindow) -> tuple[int, int, int]:
    return (slot.day_of_week, parse_clock(slot.start_time), slot.id)


def build_availability_matrix(context: SchedulingContext) -> dict[tuple[int, int, int], AvailabilityVerdict]:
    resolver = AvailabilityResolver(context.calendar)
    timetables = [
        candidate.timetable or MemberTimetable(member_id=candidate.member_id) for candidate in context.candidates
    ]
    return resolver.resolve_many(timetables, context.slots, context.calendar.weeks())


def new_assignment_state(context: SchedulingContext) -> AssignmentState:
    return AssignmentState(
        slots=list(context.slots),
        departments={candidate.member_id: candidate.department_id for candidate in context.candidates},
    )


def _check_deadline(started: float, limit: float | None) -> None:
    if limit is not None and perf_counter() - started > limit:
        raise SchedulerTimeoutError(
            f"Scheduling exceeded the {limit:g}s time limit",
            details={"time_limit_seconds": limit},
        )


def generate_rule_compliant_schedule(context: SchedulingContext) -> SchedulingResult:
    """
    Greedy planner: walks the semester week by week, fills the hardest slots of
    each week first and gives every cell to the lowest-scoring candidate that no
    hard rule vetoes. Equal scores go to the member with fewer duties, then the
    lower member id, so identical inputs always yield identical schedules.
    """
    started = perf_counter()
    if not context.candidates:
        raise ConfigurationError(
            "No eligible duty members for this semester",
            code="no_eligible_members",
        )

    candidates = sorted(context.candidates, key=lambda candidate: candidate.member_id)
    matrix = build_availability_matrix(context)
    state = new_assignment_state(context)
    assignments: list[PlannedAssignment] = []
    warnings: list[SchedulingWarning] = []

    for week in context.calendar.weeks():
        def _available_count(slot: SlotWindow) -> int:
            return sum(
                1
                for candidate in candidates
                if not context.rules.blocks(matrix[(candidate.member_id, week, slot.id)])
            )

        week_slots = [slot for slot in context.slots if context.calendar.covers(week, slot.day_of_week)]
        ordered_slots = sorted(week_slots, key=lambda slot: (_available_count(slot), *slot_sort_key(slot)))

        for slot in ordered_slots:
            _check_deadline(started, context.time_limit_seconds)
            best: tuple[float, int, int] | None = None
            chosen: SchedulingCandidate | None = None

            for candidate in candidates:
                rule_context = RuleContext(
                    week=week,
                    slot=slot,
                    verdict=matrix[(candidate.member_id, week, slot.id)],
                    state=state,
                )
                evaluation = context.rules.evaluate_candidate(candidate.profile, rule_context)
                if evaluation.vetoed:
                    continue
                rank = (evaluation.score, state.counts[candidate.member_id], candidate.member_id)
                if best is None or rank < best:
                    best = rank
                    chosen = candidate

            if chosen is None:
                warnings.append(
                    SchedulingWarning(
                        code="unfilled-slot",
                        message=f"No available candidate for {describe_slot(slot, week)}",
                        week_number=week,
                        time_slot_id=slot.id,
                    )
                )
                assignments.append(
                    PlannedAssignment(
                        week_number=week,
                        time_slot_id=slot.id,
                        member_id=None,
                        location_id=context.location_id,
                    )
                )
                continue

            average = state.department_average(chosen.department_id)
            if context.rules.is_enabled(RuleCode.LOAD_FAIRNESS) and state.counts[chosen.member_id] - average >= 1:
                warnings.append(
                    SchedulingWarning(
                        code="fairness-degraded",
                        message=(
                            f"{chosen.name} assigned to {describe_slot(slot, week)} above the department "
                            f"average load; no better candidate was available"
                        ),
                        severity="info",
                        week_number=week,
                        time_slot_id=slot.id,
                        member_id=chosen.member_id,
                        meta={"assigned": state.counts[chosen.member_id], "department_average": round(average, 2)},
                    )
                )

            state.assign(week, slot, chosen.member_id)
            assignments.append(
                PlannedAssignment(
                    week_number=week,
                    time_slot_id=slot.id,
                    member_id=chosen.member_id,
                    location_id=context.location_id,
                    score=best[0] if best else None,
                )
            )

    assignments.sort(key=lambda item: (item.week_number, item.time_slot_id))
    result = SchedulingResult(
        assignments=assignments,
        warnings=warnings,
        duration_ms=int((perf_counter() - started) * 1000),
    )
    if result.total_slots and not result.filled_slots:
        raise ConfigurationError(
            "No cell could be filled; the enabled rules leave no valid candidate",
            code="no_viable_assignment",
            details={"total_slots": result.total_slots},
        )
    return result
