import pytest
from pydantic import ValidationError

from duty_scheduler.services.availability import AVAILABLE, AvailabilityReason, AvailabilityVerdict, SlotWindow
from duty_scheduler.services.rules import (
    AssignmentState,
    CandidateProfile,
    RuleCatalog,
    RuleCode,
    RuleContext,
    RuleSet,
    load_default_rules,
    load_rule_catalog,
)

SLOTS = [
    SlotWindow(id=1, name="Early", day_of_week=1, start_time="08:00", end_time="09:00"),
    SlotWindow(id=2, name="Midday", day_of_week=1, start_time="12:00", end_time="13:00"),
    SlotWindow(id=3, name="Tuesday", day_of_week=2, start_time="12:00", end_time="13:00"),
]
COURSE_CLASH = AvailabilityVerdict(
    status="unavailable", reasons=(AvailabilityReason(source="course", message="Course conflict: Physics"),)
)


def _state() -> AssignmentState:
    return AssignmentState(slots=SLOTS, departments={1: 10, 2: 10, 3: 20})


def _context(state: AssignmentState, slot: SlotWindow, verdict: AvailabilityVerdict = AVAILABLE, week: int = 1):
    return RuleContext(week=week, slot=slot, verdict=verdict, state=state)


def test_load_rule_catalog() -> None:
    catalog = load_rule_catalog()

    assert catalog.version == "v1"
    assert [rule.code for rule in catalog.rules] == list(RuleCode)
    assert catalog.get("R3").weight == 50
    assert catalog.get(RuleCode.DEPARTMENT_ADJACENT_SLOT).weight == 30
    assert catalog.get(RuleCode.EARLY_SLOT_ROTATION).weight == 20
    assert catalog.get(RuleCode.SAME_DAY_REPEAT).kind == "hard"
    assert not catalog.get(RuleCode.SAME_DAY_REPEAT).is_configurable


def test_catalog_requires_every_rule_code() -> None:
    payload = load_rule_catalog().model_dump()
    payload["rules"] = payload["rules"][:-1]
    with pytest.raises(ValidationError):
        RuleCatalog.model_validate(payload)


def test_non_configurable_rule_cannot_be_disabled() -> None:
    rules = RuleSet.from_overrides(load_rule_catalog(), {"R6": False, "R3": False})

    assert rules.is_enabled(RuleCode.SAME_DAY_REPEAT)
    assert not rules.is_enabled(RuleCode.DEPARTMENT_SAME_DAY)
    assert rules.weight(RuleCode.DEPARTMENT_SAME_DAY) == 0


def test_course_conflict_vetoes_candidate() -> None:
    rules = load_default_rules()
    evaluation = rules.evaluate_candidate(CandidateProfile(1, "Ana", 10), _context(_state(), SLOTS[0], COURSE_CLASH))

    assert evaluation.vetoed
    assert evaluation.status == "unavailable"
    assert evaluation.reasons == ["Course conflict: Physics"]


def test_disabled_course_rule_lets_clash_through() -> None:
    rules = RuleSet.from_overrides(load_rule_catalog(), {"R1": False})
    evaluation = rules.evaluate_candidate(CandidateProfile(1, "Ana", 10), _context(_state(), SLOTS[0], COURSE_CLASH))

    assert not evaluation.vetoed
    assert not rules.blocks(COURSE_CLASH)


def test_same_day_repeat_is_a_conflict() -> None:
    state = _state()
    state.assign(1, SLOTS[0], 1)

    evaluation = load_default_rules().evaluate_candidate(CandidateProfile(1, "Ana", 10), _context(state, SLOTS[1]))

    assert evaluation.status == "conflict"
    assert evaluation.reasons == ["Already on duty this day"]


def test_department_rules_penalise_same_department() -> None:
    state = _state()
    state.assign(1, SLOTS[0], 1)
    rules = RuleSet.from_overrides(load_rule_catalog(), {"R7": False, "R8": False})

    teammate = rules.evaluate_candidate(CandidateProfile(2, "Bo", 10), _context(state, SLOTS[1]))
    outsider = rules.evaluate_candidate(CandidateProfile(3, "Cy", 20), _context(state, SLOTS[1]))

    # Same day (R3) and neighbouring slot (R4).
    assert teammate.score == 50 + 30
    assert outsider.score == 0


def test_early_slot_rotation_looks_at_adjacent_weeks() -> None:
    state = _state()
    state.assign(1, SLOTS[0], 1)
    rules = RuleSet.from_overrides(load_rule_catalog(), {"R7": False, "R8": False})

    evaluation = rules.evaluate_candidate(CandidateProfile(2, "Bo", 10), _context(state, SLOTS[0], week=2))

    assert evaluation.score == 20


def test_load_fairness_and_rest_spacing_scores() -> None:
    state = _state()
    state.assign(1, SLOTS[0], 1)
    rules = RuleSet.from_overrides(load_rule_catalog(), {"R3": False, "R4": False, "R5": False})

    busy = rules.evaluate_candidate(CandidateProfile(1, "Ana", 10), _context(state, SLOTS[2]))
    idle = rules.evaluate_candidate(CandidateProfile(2, "Bo", 10), _context(state, SLOTS[2]))

    # One duty against a department average of 0.5, plus a duty on the previous day.
    assert busy.score == 100 * 1 + 50 * 0.5 + 15
    assert idle.score == 0
