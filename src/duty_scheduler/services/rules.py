"""Duty rule catalogue and the uniform evaluation entry point."""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from importlib import resources
from typing import Callable, Iterable, Literal, Mapping

from pydantic import BaseModel, Field, model_validator

from duty_scheduler.services.availability import AvailabilityVerdict, SlotWindow, parse_clock

EARLY_SLOT_CUTOFF = "08:30"


class RuleCode(str, Enum):
    COURSE_CONFLICT = "R1"
    UNAVAILABLE_TIME = "R2"
    DEPARTMENT_SAME_DAY = "R3"
    DEPARTMENT_ADJACENT_SLOT = "R4"
    EARLY_SLOT_ROTATION = "R5"
    SAME_DAY_REPEAT = "R6"
    LOAD_FAIRNESS = "R7"
    REST_SPACING = "R8"


class RuleDefinition(BaseModel):
    code: RuleCode
    name: str
    description: str = ""
    kind: Literal["hard", "soft"]
    weight: int = Field(default=0, ge=0)
    is_enabled: bool = True
    is_configurable: bool = True


class RuleCatalog(BaseModel):
    version: str = "v1"
    rules: list[RuleDefinition]

    @model_validator(mode="after")
    def validate_codes(self) -> "RuleCatalog":
        codes = [rule.code for rule in self.rules]
        if len(codes) != len(set(codes)):
            raise ValueError("rule codes must be unique")
        missing = set(RuleCode) - set(codes)
        if missing:
            raise ValueError(f"rule catalogue is missing {sorted(code.value for code in missing)}")
        return self

    def get(self, code: RuleCode | str) -> RuleDefinition:
        code = RuleCode(code)
        for rule in self.rules:
            if rule.code == code:
                return rule
        raise KeyError(code)


@dataclass(frozen=True)
class Veto:
    code: RuleCode
    status: Literal["unavailable", "conflict"]
    reasons: tuple[str, ...]


@dataclass(frozen=True)
class Score:
    code: RuleCode
    value: float = 0.0


@dataclass(frozen=True)
class CandidateProfile:
    member_id: int
    name: str
    department_id: int | None = None


@dataclass
class AssignmentState:
    """Partial schedule the rules look at while a cell is being decided."""

    slots: list[SlotWindow]
    departments: dict[int, int | None]
    cells: dict[tuple[int, int], int] = field(default_factory=dict)
    counts: Counter = field(default_factory=Counter)
    member_days: Counter = field(default_factory=Counter)
    department_days: Counter = field(default_factory=Counter)

    def __post_init__(self) -> None:
        self._slot_lookup = {slot.id: slot for slot in self.slots}
        self._day_order: dict[int, list[SlotWindow]] = {}
        for slot in sorted(self.slots, key=lambda s: (s.day_of_week, parse_clock(s.start_time), s.id)):
            self._day_order.setdefault(slot.day_of_week, []).append(slot)

    def assign(self, week: int, slot: SlotWindow, member_id: int) -> None:
        self.cells[(week, slot.id)] = member_id
        self.counts[member_id] += 1
        self.member_days[(member_id, week, slot.day_of_week)] += 1
        self.department_days[(self.departments.get(member_id), week, slot.day_of_week)] += 1

    def holder_department(self, week: int, slot_id: int) -> int | None:
        member_id = self.cells.get((week, slot_id))
        if member_id is None:
            return None
        return self.departments.get(member_id)

    def neighbours(self, slot: SlotWindow) -> list[SlotWindow]:
        ordered = self._day_order.get(slot.day_of_week, [])
        index = next((i for i, candidate in enumerate(ordered) if candidate.id == slot.id), None)
        if index is None:
            return []
        return [ordered[i] for i in (index - 1, index + 1) if 0 <= i < len(ordered)]

    def early_slots(self, day_of_week: int) -> list[SlotWindow]:
        return [slot for slot in self._day_order.get(day_of_week, []) if is_early_slot(slot)]

    def department_average(self, department_id: int | None) -> float:
        members = [member for member, dept in self.departments.items() if dept == department_id]
        if not members:
            return 0.0
        return sum(self.counts[member] for member in members) / len(members)


@dataclass(frozen=True)
class RuleContext:
    week: int
    slot: SlotWindow
    verdict: AvailabilityVerdict
    state: AssignmentState


def is_early_slot(slot: SlotWindow) -> bool:
    return parse_clock(slot.start_time) <= parse_clock(EARLY_SLOT_CUTOFF)


RuleOutcome = Veto | Score
RuleEvaluator = Callable[[RuleDefinition, CandidateProfile, RuleContext], RuleOutcome]


def _course_conflict(rule: RuleDefinition, candidate: CandidateProfile, context: RuleContext) -> RuleOutcome:
    reasons = context.verdict.reasons_from("course")
    if reasons:
        return Veto(rule.code, "unavailable", tuple(reason.message for reason in reasons))
    return Score(rule.code)


def _unavailable_time(rule: RuleDefinition, candidate: CandidateProfile, context: RuleContext) -> RuleOutcome:
    reasons = context.verdict.reasons_from("declared")
    if reasons:
        return Veto(rule.code, "unavailable", tuple(reason.message for reason in reasons))
    return Score(rule.code)


def _same_day_repeat(rule: RuleDefinition, candidate: CandidateProfile, context: RuleContext) -> RuleOutcome:
    if context.state.member_days[(candidate.member_id, context.week, context.slot.day_of_week)]:
        return Veto(rule.code, "conflict", ("Already on duty this day",))
    return Score(rule.code)


def _department_same_day(rule: RuleDefinition, candidate: CandidateProfile, context: RuleContext) -> RuleOutcome:
    if candidate.department_id is None:
        return Score(rule.code)
    key = (candidate.department_id, context.week, context.slot.day_of_week)
    return Score(rule.code, rule.weight if context.state.department_days[key] else 0)


def _department_adjacent_slot(
    rule: RuleDefinition, candidate: CandidateProfile, context: RuleContext
) -> RuleOutcome:
    if candidate.department_id is None:
        return Score(rule.code)
    for neighbour in context.state.neighbours(context.slot):
        if context.state.holder_department(context.week, neighbour.id) == candidate.department_id:
            return Score(rule.code, rule.weight)
    return Score(rule.code)


def _early_slot_rotation(rule: RuleDefinition, candidate: CandidateProfile, context: RuleContext) -> RuleOutcome:
    if candidate.department_id is None or not is_early_slot(context.slot):
        return Score(rule.code)
    penalty = 0
    for other_week in (context.week - 1, context.week + 1):
        for slot in context.state.early_slots(context.slot.day_of_week):
            if context.state.holder_department(other_week, slot.id) == candidate.department_id:
                penalty += rule.weight
    return Score(rule.code, penalty)


def _load_fairness(rule: RuleDefinition, candidate: CandidateProfile, context: RuleContext) -> RuleOutcome:
    count = context.state.counts[candidate.member_id]
    excess = max(0.0, count - context.state.department_average(candidate.department_id))
    return Score(rule.code, rule.weight * count + rule.weight / 2 * excess)


def _rest_spacing(rule: RuleDefinition, candidate: CandidateProfile, context: RuleContext) -> RuleOutcome:
    day = context.slot.day_of_week
    for neighbour_day in (day - 1, day + 1):
        if context.state.member_days[(candidate.member_id, context.week, neighbour_day)]:
            return Score(rule.code, rule.weight)
    return Score(rule.code)


_EVALUATORS: dict[RuleCode, RuleEvaluator] = {
    RuleCode.COURSE_CONFLICT: _course_conflict,
    RuleCode.UNAVAILABLE_TIME: _unavailable_time,
    RuleCode.DEPARTMENT_SAME_DAY: _department_same_day,
    RuleCode.DEPARTMENT_ADJACENT_SLOT: _department_adjacent_slot,
    RuleCode.EARLY_SLOT_ROTATION: _early_slot_rotation,
    RuleCode.SAME_DAY_REPEAT: _same_day_repeat,
    RuleCode.LOAD_FAIRNESS: _load_fairness,
    RuleCode.REST_SPACING: _rest_spacing,
}


def evaluate(rule: RuleDefinition, candidate: CandidateProfile, context: RuleContext) -> RuleOutcome:
    return _EVALUATORS[rule.code](rule, candidate, context)


@dataclass(frozen=True)
class CandidateEvaluation:
    vetoes: tuple[Veto, ...]
    scores: tuple[Score, ...]

    @property
    def vetoed(self) -> bool:
        return bool(self.vetoes)

    @property
    def score(self) -> float:
        return sum(score.value for score in self.scores)

    @property
    def status(self) -> str:
        if not self.vetoes:
            return "available"
        if any(veto.status == "unavailable" for veto in self.vetoes):
            return "unavailable"
        return "conflict"

    @property
    def reasons(self) -> list[str]:
        return [reason for veto in self.vetoes for reason in veto.reasons]


@dataclass(frozen=True)
class RuleSet:
    """Catalogue plus the codes that are switched on for this run."""

    catalog: RuleCatalog
    enabled: frozenset[RuleCode]

    @classmethod
    def from_overrides(cls, catalog: RuleCatalog, overrides: Mapping[str, bool] | None = None) -> "RuleSet":
        overrides = overrides or {}
        enabled = set()
        for rule in catalog.rules:
            is_enabled = overrides.get(rule.code.value, rule.is_enabled)
            if is_enabled or not rule.is_configurable:
                enabled.add(rule.code)
        return cls(catalog=catalog, enabled=frozenset(enabled))

    def is_enabled(self, code: RuleCode | str) -> bool:
        return RuleCode(code) in self.enabled

    def active_rules(self, kind: Literal["hard", "soft"] | None = None) -> list[RuleDefinition]:
        return [
            rule
            for rule in self.catalog.rules
            if rule.code in self.enabled and (kind is None or rule.kind == kind)
        ]

    def weight(self, code: RuleCode) -> int:
        return self.catalog.get(code).weight if code in self.enabled else 0

    def blocks(self, verdict: AvailabilityVerdict) -> bool:
        """True when an enabled availability rule vetoes the verdict."""

        if verdict.available:
            return False
        if self.is_enabled(RuleCode.COURSE_CONFLICT) and verdict.reasons_from("course"):
            return True
        return self.is_enabled(RuleCode.UNAVAILABLE_TIME) and bool(verdict.reasons_from("declared"))

    def evaluate_candidate(
        self,
        candidate: CandidateProfile,
        context: RuleContext,
        *,
        kinds: Iterable[str] = ("hard", "soft"),
    ) -> CandidateEvaluation:
        vetoes: list[Veto] = []
        scores: list[Score] = []
        for rule in self.active_rules():
            if rule.kind not in kinds:
                continue
            outcome = evaluate(rule, candidate, context)
            if isinstance(outcome, Veto):
                vetoes.append(outcome)
            else:
                scores.append(outcome)
        return CandidateEvaluation(vetoes=tuple(vetoes), scores=tuple(scores))


def _load_catalog_from_json() -> RuleCatalog:
    with resources.files("duty_scheduler.services.data").joinpath("default_rules.json").open(
        "r", encoding="utf-8"
    ) as handle:
        payload = json.load(handle)
    return RuleCatalog.model_validate(payload)


@lru_cache(maxsize=1)
def load_rule_catalog() -> RuleCatalog:
    """Return the rule catalogue bundled with the application."""

    return _load_catalog_from_json()


def load_default_rules() -> RuleSet:
    return RuleSet.from_overrides(load_rule_catalog())
