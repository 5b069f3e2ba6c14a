from datetime import date

import pytest

from duty_scheduler.core.exceptions import ConfigurationError, SchedulerTimeoutError
from duty_scheduler.services.availability import MemberTimetable, SlotWindow, TimetableEntry
from duty_scheduler.services.recurrence import Recurrence, SemesterCalendar
from duty_scheduler.services.rules import load_default_rules
from duty_scheduler.services.scheduler import (
    SchedulingCandidate,
    SchedulingContext,
    generate_rule_compliant_schedule,
)
from duty_scheduler.services.scheduler_optimizer import generate_optimised_schedule

CALENDAR = SemesterCalendar(date(2024, 9, 2), date(2024, 9, 13))
SLOTS = [
    SlotWindow(id=1, name="Monday morning", day_of_week=1, start_time="08:00", end_time="10:00"),
    SlotWindow(id=2, name="Monday afternoon", day_of_week=1, start_time="14:00", end_time="16:00"),
    SlotWindow(id=3, name="Wednesday", day_of_week=3, start_time="10:00", end_time="12:00"),
    SlotWindow(id=4, name="Friday", day_of_week=5, start_time="14:00", end_time="16:00"),
]
MONDAY_COURSE = TimetableEntry(
    source="course",
    recurrence=Recurrence(day_of_week=1),
    start_time="08:00",
    end_time="18:00",
    label="Linear Algebra",
)


def _candidates() -> list[SchedulingCandidate]:
    return [
        SchedulingCandidate(
            member_id=1,
            name="Ana",
            department_id=10,
            timetable=MemberTimetable(member_id=1, entries=[MONDAY_COURSE]),
        ),
        SchedulingCandidate(member_id=2, name="Bo", department_id=20),
        SchedulingCandidate(member_id=3, name="Cy", department_id=30),
    ]


def _context(**overrides) -> SchedulingContext:
    data = {
        "calendar": CALENDAR,
        "slots": SLOTS,
        "candidates": _candidates(),
        "rules": load_default_rules(),
        "location_id": 5,
    }
    data.update(overrides)
    return SchedulingContext(**data)


def test_generate_schedule_fills_every_cell_around_courses() -> None:
    result = generate_rule_compliant_schedule(_context())

    assert result.total_slots == CALENDAR.total_weeks * len(SLOTS) == 8
    assert result.filled_slots == 8
    assert result.warnings == [] or all(warning.code == "fairness-degraded" for warning in result.warnings)
    monday_cells = [item for item in result.assignments if item.time_slot_id in (1, 2)]
    assert all(item.member_id != 1 for item in monday_cells)
    assert all(item.location_id == 5 for item in result.assignments)


def test_generate_schedule_keeps_one_duty_per_member_per_day() -> None:
    result = generate_rule_compliant_schedule(_context())

    days = {slot.id: slot.day_of_week for slot in SLOTS}
    seen = set()
    for item in result.assignments:
        key = (item.member_id, item.week_number, days[item.time_slot_id])
        assert key not in seen
        seen.add(key)


def test_generate_schedule_is_deterministic() -> None:
    first = generate_rule_compliant_schedule(_context())
    second = generate_rule_compliant_schedule(_context())

    assert [(item.week_number, item.time_slot_id, item.member_id) for item in first.assignments] == [
        (item.week_number, item.time_slot_id, item.member_id) for item in second.assignments
    ]


def test_generate_schedule_spreads_load() -> None:
    result = generate_rule_compliant_schedule(_context())

    loads = {member_id: 0 for member_id in (1, 2, 3)}
    for item in result.assignments:
        loads[item.member_id] += 1
    assert max(loads.values()) - min(loads.values()) <= 1


def test_unfillable_cells_become_vacant_with_warning() -> None:
    context = _context(candidates=_candidates()[:1])

    result = generate_rule_compliant_schedule(context)

    assert result.total_slots == 8
    assert result.filled_slots == 4
    unfilled = [warning for warning in result.warnings if warning.code == "unfilled-slot"]
    assert len(unfilled) == 4
    assert {warning.time_slot_id for warning in unfilled} == {1, 2}


def test_generate_schedule_without_candidates_fails() -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        generate_rule_compliant_schedule(_context(candidates=[]))
    assert excinfo.value.code == "no_eligible_members"


def test_generate_schedule_with_no_viable_cell_fails() -> None:
    monday_slots = SLOTS[:2]
    with pytest.raises(ConfigurationError) as excinfo:
        generate_rule_compliant_schedule(_context(slots=monday_slots, candidates=_candidates()[:1]))
    assert excinfo.value.code == "no_viable_assignment"


def test_generate_schedule_honours_time_limit() -> None:
    with pytest.raises(SchedulerTimeoutError):
        generate_rule_compliant_schedule(_context(time_limit_seconds=1e-9))


def test_optimised_schedule_respects_hard_rules() -> None:
    result = generate_optimised_schedule(_context(time_limit_seconds=10))

    assert result.engine == "optimizer"
    assert result.total_slots == 8
    assert result.filled_slots == 8
    assert all(item.member_id != 1 for item in result.assignments if item.time_slot_id in (1, 2))


@pytest.mark.parametrize("engine", [generate_rule_compliant_schedule, generate_optimised_schedule])
def test_cells_outside_semester_dates_are_not_generated(engine) -> None:
    # Wednesday 4 September to Wednesday 11 September 2024.
    calendar = SemesterCalendar(date(2024, 9, 4), date(2024, 9, 11))
    result = engine(_context(calendar=calendar, time_limit_seconds=10))

    cells = {(item.week_number, item.time_slot_id) for item in result.assignments}
    assert cells == {(1, 3), (1, 4), (2, 1), (2, 2), (2, 3)}
    assert result.total_slots == 5
