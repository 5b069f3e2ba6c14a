from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from time import perf_counter
from typing import Dict, List, Tuple

from ortools.sat.python import cp_model

from duty_scheduler.core.exceptions import ConfigurationError, SchedulerTimeoutError
from duty_scheduler.services.rules import RuleCode, is_early_slot
from duty_scheduler.services.scheduler import (
    PlannedAssignment,
    SchedulingContext,
    SchedulingResult,
    SchedulingWarning,
    build_availability_matrix,
    describe_slot,
    slot_sort_key,
)

DEFAULT_TIME_LIMIT_SECONDS = 30.0


@dataclass
class OptimizerConfig:
    unfilled_penalty: int = 1000
    random_seed: int = 0
    num_search_workers: int = 1


def generate_optimised_schedule(context: SchedulingContext, config: OptimizerConfig | None = None) -> SchedulingResult:
    """CP-SAT variant of the planner.

    Maximises coverage first, then minimises the soft rule penalties. Each
    enabled soft rule keeps its catalogue weight; R7 is modelled as the spread
    between the most and least loaded member instead of per-step averages.
    """
    if config is None:
        config = OptimizerConfig()
    start = perf_counter()

    if not context.candidates:
        raise ConfigurationError("No eligible duty members for this semester", code="no_eligible_members")

    rules = context.rules
    weeks = list(context.calendar.weeks())
    slots = sorted(context.slots, key=slot_sort_key)
    cells = [(week, slot) for week in weeks for slot in slots if context.calendar.covers(week, slot.day_of_week)]
    candidates = sorted(context.candidates, key=lambda candidate: candidate.member_id)
    matrix = build_availability_matrix(context)

    model = cp_model.CpModel()
    assign_vars: Dict[Tuple[int, int, int], cp_model.IntVar] = {}
    objective_terms: List[cp_model.LinearExpr] = []

    for candidate in candidates:
        for week, slot in cells:
            if rules.blocks(matrix[(candidate.member_id, week, slot.id)]):
                continue
            assign_vars[(candidate.member_id, week, slot.id)] = model.NewBoolVar(
                f"x_m{candidate.member_id}_w{week}_s{slot.id}"
            )

    # At most one member per cell; unfilled cells are penalised.
    for week, slot in cells:
        cell_vars = [
            assign_vars[key]
            for key in ((candidate.member_id, week, slot.id) for candidate in candidates)
            if key in assign_vars
        ]
        filled = model.NewBoolVar(f"filled_w{week}_s{slot.id}")
        if cell_vars:
            model.Add(sum(cell_vars) == filled)
        else:
            model.Add(filled == 0)
        objective_terms.append((1 - filled) * config.unfilled_penalty)

    # R6: one duty per member per day.
    day_vars: Dict[Tuple[int, int, int], List[cp_model.IntVar]] = defaultdict(list)
    slot_days = {slot.id: slot.day_of_week for slot in slots}
    for (member_id, week, slot_id), var in assign_vars.items():
        day_vars[(member_id, week, slot_days[slot_id])].append(var)
    for vars_for_day in day_vars.values():
        if len(vars_for_day) > 1:
            model.Add(sum(vars_for_day) <= 1)

    departments = {candidate.member_id: candidate.department_id for candidate in candidates}
    department_ids = sorted({dept for dept in departments.values() if dept is not None})

    def department_cell(dept: int, week: int, slot_id: int) -> cp_model.LinearExpr | int:
        terms = [
            assign_vars[(member_id, week, slot_id)]
            for member_id, member_dept in departments.items()
            if member_dept == dept and (member_id, week, slot_id) in assign_vars
        ]
        return sum(terms) if terms else 0

    def pair_penalty(name: str, left, right, weight: int) -> None:
        if isinstance(left, int) or isinstance(right, int):
            return
        both = model.NewBoolVar(name)
        model.Add(both >= left + right - 1)
        objective_terms.append(both * weight)

    # R3: department spread per day.
    weight = rules.weight(RuleCode.DEPARTMENT_SAME_DAY)
    if weight:
        for dept in department_ids:
            for week in weeks:
                for day in sorted({slot.day_of_week for slot in slots}):
                    day_cells = [department_cell(dept, week, slot.id) for slot in slots if slot.day_of_week == day]
                    held = sum(day_cells)
                    if isinstance(held, int):
                        continue
                    excess = model.NewIntVar(0, len(day_cells), f"dept_excess_d{dept}_w{week}_day{day}")
                    model.Add(excess >= held - 1)
                    objective_terms.append(excess * weight)

    # R4: neighbouring slots on the same day.
    weight = rules.weight(RuleCode.DEPARTMENT_ADJACENT_SLOT)
    if weight:
        for left, right in zip(slots, slots[1:]):
            if left.day_of_week != right.day_of_week:
                continue
            for dept in department_ids:
                for week in weeks:
                    pair_penalty(
                        f"adjacent_d{dept}_w{week}_s{left.id}_{right.id}",
                        department_cell(dept, week, left.id),
                        department_cell(dept, week, right.id),
                        weight,
                    )

    # R5: early slots rotate between departments week to week.
    weight = rules.weight(RuleCode.EARLY_SLOT_ROTATION)
    if weight:
        early = [slot for slot in slots if is_early_slot(slot)]
        for first in early:
            for second in early:
                if first.day_of_week != second.day_of_week:
                    continue
                for dept in department_ids:
                    for week in weeks[:-1]:
                        pair_penalty(
                            f"early_d{dept}_w{week}_s{first.id}_{second.id}",
                            department_cell(dept, week, first.id),
                            department_cell(dept, week + 1, second.id),
                            weight,
                        )

    # R7: keep the load spread narrow.
    weight = rules.weight(RuleCode.LOAD_FAIRNESS)
    if weight and len(candidates) > 1:
        cell_count = len(cells)
        max_load = model.NewIntVar(0, cell_count, "max_load")
        min_load = model.NewIntVar(0, cell_count, "min_load")
        for candidate in candidates:
            load = sum(var for (member_id, _, _), var in assign_vars.items() if member_id == candidate.member_id)
            model.Add(max_load >= load)
            model.Add(min_load <= load)
        objective_terms.append((max_load - min_load) * weight)

    # R8: no duties on consecutive days of one week.
    weight = rules.weight(RuleCode.REST_SPACING)
    if weight:
        for (member_id, week, day), vars_for_day in day_vars.items():
            next_day = day_vars.get((member_id, week, day + 1))
            if next_day:
                pair_penalty(f"rest_m{member_id}_w{week}_day{day}", sum(vars_for_day), sum(next_day), weight)

    solver = cp_model.CpSolver()
    solver.parameters.max_time_in_seconds = float(context.time_limit_seconds or DEFAULT_TIME_LIMIT_SECONDS)
    solver.parameters.num_search_workers = config.num_search_workers
    solver.parameters.random_seed = config.random_seed
    model.Minimize(cp_model.LinearExpr.Sum(objective_terms))

    status = solver.Solve(model)
    duration_ms = int((perf_counter() - start) * 1000)
    solver_status_name = solver.StatusName(status)

    if status == cp_model.UNKNOWN:
        raise SchedulerTimeoutError(
            "Optimizer found no solution within the time limit",
            details={"time_limit_seconds": solver.parameters.max_time_in_seconds, "solver_status": solver_status_name},
        )
    if status not in (cp_model.OPTIMAL, cp_model.FEASIBLE):
        raise RuntimeError(f"Optimizer returned unexpected status {solver_status_name}")

    assignments: List[PlannedAssignment] = []
    warnings: List[SchedulingWarning] = []
    for week, slot in cells:
        member_id = next(
            (
                candidate.member_id
                for candidate in candidates
                if (candidate.member_id, week, slot.id) in assign_vars
                and solver.Value(assign_vars[(candidate.member_id, week, slot.id)]) > 0
            ),
            None,
        )
        if member_id is None:
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
                member_id=member_id,
                location_id=context.location_id,
            )
        )

    assignments.sort(key=lambda item: (item.week_number, item.time_slot_id))
    result = SchedulingResult(
        assignments=assignments,
        warnings=warnings,
        engine="optimizer",
        status="ok",
        duration_ms=duration_ms,
        meta={"solver_status": solver_status_name, "objective": solver.ObjectiveValue()},
    )
    if result.total_slots and not result.filled_slots:
        raise ConfigurationError(
            "No cell could be filled; the enabled rules leave no valid candidate",
            code="no_viable_assignment",
            details={"total_slots": result.total_slots},
        )
    return result
