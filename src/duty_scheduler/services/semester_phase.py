"""Semester phase machine: configuring -> collecting -> scheduling -> published."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from duty_scheduler.core.exceptions import PhaseTransitionError
from duty_scheduler.db.models.semester import Semester
from duty_scheduler.repositories import directory as directory_repo
from duty_scheduler.repositories import schedule as schedule_repo
from duty_scheduler.repositories import semester as semester_repo
from duty_scheduler.schemas.semester import PhaseCheckItem, PhaseCheckResponse

logger = logging.getLogger(__name__)

PHASES = ("configuring", "collecting", "scheduling", "published")


async def _exit_checks(session: AsyncSession, semester: Semester) -> list[PhaseCheckItem]:
    if semester.phase == "configuring":
        slots = await semester_repo.list_active_time_slots(session, semester.id)
        locations = await directory_repo.list_locations(session, active_only=True)
        duty = await semester_repo.list_assignments(session, semester.id, duty_required=True)
        return [
            PhaseCheckItem(
                code="time_slots", label="Active time slots", passed=bool(slots), message=f"{len(slots)} configured"
            ),
            PhaseCheckItem(
                code="locations",
                label="Active locations",
                passed=bool(locations),
                message=f"{len(locations)} configured",
            ),
            PhaseCheckItem(
                code="duty_members", label="Duty members", passed=bool(duty), message=f"{len(duty)} assigned"
            ),
        ]
    if semester.phase == "collecting":
        submitted, total = await semester_repo.submission_counts(session, semester.id)
        return [
            PhaseCheckItem(
                code="timetable_submission",
                label="Timetable submission",
                passed=total > 0 and submitted == total,
                message=f"{submitted}/{total} submitted",
            )
        ]
    if semester.phase == "scheduling":
        schedule = await schedule_repo.get_schedule_for_semester(session, semester.id)
        return [
            PhaseCheckItem(
                code="schedule_published",
                label="Schedule published",
                passed=schedule is not None and schedule.status == "published",
                message="no schedule generated" if schedule is None else f"schedule is {schedule.status}",
            )
        ]
    return []


async def check_phase(session: AsyncSession, semester: Semester) -> PhaseCheckResponse:
    checks = await _exit_checks(session, semester)
    can_advance = semester.phase != PHASES[-1] and all(check.passed for check in checks)
    return PhaseCheckResponse(phase=semester.phase, can_advance=can_advance, checks=checks)


async def transition_phase(session: AsyncSession, semester: Semester, target_phase: str) -> Semester:
    """Move one step forward when the current phase's checks pass, or to any earlier phase.

    The schedule itself is never touched here.
    """
    current = PHASES.index(semester.phase)
    target = PHASES.index(target_phase)

    if target == current:
        raise PhaseTransitionError(
            f"Semester is already in phase {semester.phase}",
            details={"phase": semester.phase},
        )
    if target > current:
        if target != current + 1:
            raise PhaseTransitionError(
                f"Cannot skip from {semester.phase} to {target_phase}",
                details={"phase": semester.phase, "target_phase": target_phase},
            )
        result = await check_phase(session, semester)
        if not result.can_advance:
            raise PhaseTransitionError(
                f"Phase {semester.phase} is not complete",
                code="phase_preconditions_unmet",
                details={"checks": [check.model_dump() for check in result.checks if not check.passed]},
            )

    logger.info("Semester %s phase %s -> %s", semester.id, semester.phase, target_phase)
    semester.phase = target_phase
    await session.flush()
    await session.refresh(semester)
    return semester
