"""Schedule lifecycle: generation, edits before and after publish, candidates."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from duty_scheduler.core.exceptions import (
    CandidateUnavailableError,
    ConcurrencyConflictError,
    ConfigurationError,
    CoverageShortfallError,
    ReasonRequiredError,
    ResourceNotFoundError,
    ScheduleStateError,
    ValidationError,
)
from duty_scheduler.db.models.schedule import Schedule, ScheduleItem
from duty_scheduler.db.models.semester import DutyAssignment, Semester, TimeSlot
from duty_scheduler.repositories import change_log as change_log_repo
from duty_scheduler.repositories import directory as directory_repo
from duty_scheduler.repositories import rules as rules_repo
from duty_scheduler.repositories import schedule as schedule_repo
from duty_scheduler.repositories import semester as semester_repo
from duty_scheduler.repositories import timetable as timetable_repo
from duty_scheduler.schemas.schedule import (
    AutoScheduleResponse,
    CandidateInfo,
    ChangeLogPage,
    ChangeLogRead,
    PrecheckItem,
    PrecheckResponse,
    ScheduleInfo,
    ScheduleItemRead,
    ScheduleSummary,
    SchedulingDiagnostic,
    UpdateItemRequest,
    UpdatePublishedItemRequest,
    ValidateCandidateResponse,
)
from duty_scheduler.services.availability import (
    AvailabilityResolver,
    MemberTimetable,
    SlotWindow,
    TimetableEntry,
)
from duty_scheduler.services.locks import schedule_lock, semester_lock
from duty_scheduler.services.recurrence import Recurrence, RepeatType, SemesterCalendar, WeekType
from duty_scheduler.services.rules import AssignmentState, CandidateEvaluation, RuleContext, RuleSet
from duty_scheduler.services.scheduler import (
    SchedulingCandidate,
    SchedulingContext,
    generate_rule_compliant_schedule,
)
from duty_scheduler.services.scheduler_optimizer import generate_optimised_schedule

logger = logging.getLogger(__name__)

NOT_SUBMITTED_REASON = "Timetable not submitted"
NOT_DUTY_MEMBER_REASON = "Not a duty member this semester"


def calendar_for(semester: Semester) -> SemesterCalendar:
    return SemesterCalendar(
        start_date=semester.start_date,
        end_date=semester.end_date,
        first_week_type=WeekType(semester.first_week_type),
    )


def slot_window(slot: TimeSlot) -> SlotWindow:
    return SlotWindow(
        id=slot.id,
        name=slot.name,
        day_of_week=slot.day_of_week,
        start_time=slot.start_time,
        end_time=slot.end_time,
    )


def _recurrence(entry) -> Recurrence:
    return Recurrence(
        day_of_week=entry.day_of_week,
        week_type=WeekType(entry.week_type),
        repeat_type=RepeatType(entry.repeat_type),
        specific_date=entry.specific_date,
    )


@asynccontextmanager
async def _committing(session: AsyncSession, operation: str) -> AsyncIterator[None]:
    """Commit the unit of work, turning lost races into retryable conflicts."""

    try:
        yield
        await session.commit()
    except (StaleDataError, IntegrityError) as exc:
        await session.rollback()
        logger.warning("Concurrent modification during %s: %s", operation, exc)
        raise ConcurrencyConflictError(
            f"The schedule was changed concurrently during {operation}; retry the request",
            details={"operation": operation},
        ) from exc


async def require_semester(session: AsyncSession, semester_id: int) -> Semester:
    semester = await semester_repo.get_semester(session, semester_id)
    if semester is None:
        raise ResourceNotFoundError("Semester", semester_id)
    return semester


async def require_schedule(session: AsyncSession, schedule_id: int) -> Schedule:
    schedule = await schedule_repo.get_schedule(session, schedule_id)
    if schedule is None:
        raise ResourceNotFoundError("Schedule", schedule_id)
    return schedule


async def require_item(session: AsyncSession, item_id: int) -> ScheduleItem:
    item = await schedule_repo.get_item(session, item_id)
    if item is None:
        raise ResourceNotFoundError("Schedule item", item_id)
    return item


async def resolve_semester(session: AsyncSession, semester_id: int | None) -> Semester | None:
    if semester_id is not None:
        return await require_semester(session, semester_id)
    return await semester_repo.get_active_semester(session)


async def load_candidates(
    session: AsyncSession, semester_id: int, assignments: list[DutyAssignment] | None = None
) -> list[SchedulingCandidate]:
    """Duty members of the semester with their timetables attached."""

    if assignments is None:
        assignments = await semester_repo.list_assignments(session, semester_id, duty_required=True)
    member_ids = [assignment.member_id for assignment in assignments]
    timetables = {member_id: MemberTimetable(member_id=member_id) for member_id in member_ids}

    for course in await timetable_repo.list_courses(session, semester_id, member_ids):
        timetables[course.member_id].entries.append(
            TimetableEntry(
                source="course",
                recurrence=_recurrence(course),
                start_time=course.start_time,
                end_time=course.end_time,
                label=course.course_name,
            )
        )
    for entry in await timetable_repo.list_unavailable_times(session, semester_id, member_ids):
        timetables[entry.member_id].entries.append(
            TimetableEntry(
                source="declared",
                recurrence=_recurrence(entry),
                start_time=entry.start_time,
                end_time=entry.end_time,
                label=entry.reason,
            )
        )

    return [
        SchedulingCandidate(
            member_id=assignment.member_id,
            name=assignment.member.name,
            department_id=assignment.member.department_id,
            timetable=timetables[assignment.member_id],
        )
        for assignment in assignments
    ]


async def precheck(session: AsyncSession, semester_id: int) -> PrecheckResponse:
    semester = await require_semester(session, semester_id)
    slots = await semester_repo.list_active_time_slots(session, semester.id)
    locations = await directory_repo.list_locations(session, active_only=True)
    submitted, total = await semester_repo.submission_counts(session, semester.id)

    checks = [
        PrecheckItem(
            code="no_time_slots",
            passed=bool(slots),
            message=f"{len(slots)} active time slot(s)",
        ),
        PrecheckItem(
            code="no_locations",
            passed=bool(locations),
            message=f"{len(locations)} active location(s)",
        ),
        PrecheckItem(
            code="no_duty_members",
            passed=total > 0,
            message=f"{total} duty member(s)",
        ),
        PrecheckItem(
            code="submission_incomplete",
            passed=total > 0 and submitted == total,
            message=f"{submitted}/{total} timetables submitted",
        ),
    ]
    return PrecheckResponse(semester_id=semester.id, ready=all(check.passed for check in checks), checks=checks)


async def _ensure_preconditions(session: AsyncSession, semester: Semester) -> None:
    result = await precheck(session, semester.id)
    failed = {check.code: check for check in result.checks if not check.passed}
    for code in ("no_time_slots", "no_locations", "no_duty_members"):
        if code in failed:
            raise ConfigurationError(failed[code].message, code=code, details={"semester_id": semester.id})
    if "submission_incomplete" in failed:
        submitted, total = await semester_repo.submission_counts(session, semester.id)
        raise CoverageShortfallError(
            f"Timetable submission incomplete: {submitted}/{total}",
            details={"submitted": submitted, "total": total},
        )


async def schedule_info(session: AsyncSession, schedule: Schedule) -> ScheduleInfo:
    items = await schedule_repo.list_items(session, schedule.id)
    summary = ScheduleSummary.model_validate(schedule)
    return ScheduleInfo(
        **summary.model_dump(),
        items=[ScheduleItemRead.model_validate(item) for item in items],
    )


async def auto_schedule(
    session: AsyncSession,
    semester_id: int | None,
    *,
    strategy: str = "heuristic",
    operator: str = "system",
    time_limit_seconds: float | None = None,
) -> AutoScheduleResponse:
    semester = await resolve_semester(session, semester_id)
    if semester is None:
        raise ConfigurationError("No semester given and no semester is active", code="no_active_semester")

    async with semester_lock(semester.id):
        existing = await schedule_repo.get_schedule_for_semester(session, semester.id)
        if existing is not None:
            # Pick up writes committed by whoever held the lock before us.
            await session.refresh(existing)
            if existing.status == "published":
                logger.warning(
                    "Rejected auto-schedule for semester %s: schedule %s is published", semester.id, existing.id
                )
                raise ScheduleStateError(
                    "The semester's schedule is already published and cannot be regenerated",
                    code="schedule_published",
                    details={"schedule_id": existing.id},
                )

        await _ensure_preconditions(session, semester)

        slots = await semester_repo.list_active_time_slots(session, semester.id)
        assignments = [
            assignment
            for assignment in await semester_repo.list_assignments(session, semester.id, duty_required=True)
            if assignment.timetable_status == "submitted"
        ]
        candidates = await load_candidates(session, semester.id, assignments)
        location = await directory_repo.get_default_location(session)
        context = SchedulingContext(
            calendar=calendar_for(semester),
            slots=[slot_window(slot) for slot in slots],
            candidates=candidates,
            rules=await rules_repo.load_rule_set(session),
            location_id=location.id if location else None,
            time_limit_seconds=time_limit_seconds,
        )

        if strategy == "optimized":
            result = generate_optimised_schedule(context)
        else:
            result = generate_rule_compliant_schedule(context)

        async with _committing(session, "auto-schedule"):
            schedule = await schedule_repo.store_generation(
                session,
                semester_id=semester.id,
                schedule=existing,
                result=result,
                candidates=candidates,
                strategy=strategy,
                operator=operator,
            )

        logger.info(
            "Generated %s schedule %s for semester %s: %d/%d cells filled, %d warning(s) in %sms",
            strategy,
            schedule.id,
            semester.id,
            result.filled_slots,
            result.total_slots,
            len(result.warnings),
            result.duration_ms,
        )
        return AutoScheduleResponse(
            schedule=await schedule_info(session, schedule),
            total_slots=result.total_slots,
            filled_slots=result.filled_slots,
            warnings=[warning.message for warning in result.warnings],
            diagnostics=[
                SchedulingDiagnostic(
                    code=warning.code,
                    message=warning.message,
                    severity=warning.severity,
                    week_number=warning.week_number,
                    time_slot_id=warning.time_slot_id,
                    member_id=warning.member_id,
                    meta=warning.meta,
                )
                for warning in result.warnings
            ],
            duration_ms=result.duration_ms,
        )


async def get_schedule(session: AsyncSession, semester_id: int | None = None) -> ScheduleInfo | None:
    semester = await resolve_semester(session, semester_id)
    if semester is None:
        return None
    schedule = await schedule_repo.get_schedule_for_semester(session, semester.id)
    if schedule is None:
        return None
    return await schedule_info(session, schedule)


async def get_my_schedule(
    session: AsyncSession, member_id: int, semester_id: int | None = None
) -> list[ScheduleItemRead]:
    semester = await resolve_semester(session, semester_id)
    if semester is None:
        return []
    schedule = await schedule_repo.get_schedule_for_semester(session, semester.id)
    if schedule is None:
        return []
    items = await schedule_repo.list_items(session, schedule.id, member_id=member_id)
    return [ScheduleItemRead.model_validate(item) for item in items]


async def _refresh_fill_count(session: AsyncSession, schedule: Schedule) -> None:
    items = await schedule_repo.list_items(session, schedule.id)
    schedule.filled_slots = sum(1 for item in items if item.member_id is not None)


async def update_item(session: AsyncSession, item_id: int, payload: UpdateItemRequest) -> ScheduleItemRead:
    item = await require_item(session, item_id)
    async with schedule_lock(item.schedule_id):
        await session.refresh(item)
        schedule = await require_schedule(session, item.schedule_id)
        await session.refresh(schedule)
        if schedule.status != "draft":
            raise ScheduleStateError(
                "Only draft schedules can be edited freely; use the published item endpoint",
                code="schedule_not_draft",
                details={"schedule_id": schedule.id},
            )

        changes = payload.model_dump(exclude_unset=True)
        member_id = changes.get("member_id")
        if member_id is not None and await directory_repo.get_member(session, member_id) is None:
            raise ResourceNotFoundError("Member", member_id)
        location_id = changes.get("location_id")
        if location_id is not None and await directory_repo.get_location(session, location_id) is None:
            raise ResourceNotFoundError("Location", location_id)

        async with _committing(session, "item update"):
            for field, value in changes.items():
                setattr(item, field, value)
            await session.flush()
            await _refresh_fill_count(session, schedule)
            await session.flush()

        await session.refresh(item)
        return ScheduleItemRead.model_validate(item)


async def _evaluation_inputs(
    session: AsyncSession, item: ScheduleItem
) -> tuple[Semester, SlotWindow, AssignmentState, RuleSet, dict[int, DutyAssignment]]:
    schedule = await require_schedule(session, item.schedule_id)
    semester = await require_semester(session, schedule.semester_id)
    assignments = {
        assignment.member_id: assignment
        for assignment in await semester_repo.list_assignments(session, semester.id, duty_required=True)
    }
    slots = [slot_window(slot) for slot in await semester_repo.list_active_time_slots(session, semester.id)]
    target = slot_window(item.time_slot)
    if all(slot.id != target.id for slot in slots):
        slots.append(target)

    members = {
        member.id: member.department_id
        for member in await directory_repo.list_members(session, list(assignments))
    }
    state = AssignmentState(slots=slots, departments=dict(members))
    by_id = {slot.id: slot for slot in slots}
    for other in await schedule_repo.list_items(session, schedule.id):
        if other.id == item.id or other.member_id is None or other.time_slot_id not in by_id:
            continue
        if other.member_id not in state.departments:
            member = other.member
            state.departments[other.member_id] = member.department_id if member else None
        state.assign(other.week_number, by_id[other.time_slot_id], other.member_id)
    return semester, target, state, await rules_repo.load_rule_set(session), assignments


def _evaluate(
    candidate: SchedulingCandidate,
    item: ScheduleItem,
    slot: SlotWindow,
    state: AssignmentState,
    rules: RuleSet,
    resolver: AvailabilityResolver,
) -> CandidateEvaluation:
    verdict = resolver.resolve(candidate.timetable or MemberTimetable(candidate.member_id), slot, item.week_number)
    context = RuleContext(week=item.week_number, slot=slot, verdict=verdict, state=state)
    return rules.evaluate_candidate(candidate.profile, context)


async def validate_candidate(session: AsyncSession, item_id: int, member_id: int) -> ValidateCandidateResponse:
    item = await require_item(session, item_id)
    if await directory_repo.get_member(session, member_id) is None:
        raise ResourceNotFoundError("Member", member_id)
    semester, slot, state, rules, assignments = await _evaluation_inputs(session, item)

    assignment = assignments.get(member_id)
    if assignment is None:
        return ValidateCandidateResponse(valid=False, conflicts=[NOT_DUTY_MEMBER_REASON])
    candidate = (await load_candidates(session, semester.id, [assignment]))[0]
    evaluation = _evaluate(candidate, item, slot, state, rules, AvailabilityResolver(calendar_for(semester)))
    conflicts = evaluation.reasons
    if assignment.timetable_status != "submitted":
        conflicts = [NOT_SUBMITTED_REASON, *conflicts]
    return ValidateCandidateResponse(valid=not conflicts, conflicts=conflicts)


async def get_candidates(session: AsyncSession, item_id: int) -> list[CandidateInfo]:
    """Every duty member annotated with availability for the item's cell.

    Hard vetoes (course, declared unavailability, same-day repeat) always
    mark the member unavailable; members without a submitted timetable are
    listed but never offered as available.
    """
    item = await require_item(session, item_id)
    semester, slot, state, rules, assignments = await _evaluation_inputs(session, item)
    resolver = AvailabilityResolver(calendar_for(semester))
    candidates = await load_candidates(session, semester.id, list(assignments.values()))

    ranked: list[tuple[tuple, CandidateInfo]] = []
    for candidate in candidates:
        assignment = assignments[candidate.member_id]
        evaluation = _evaluate(candidate, item, slot, state, rules, resolver)
        conflicts = evaluation.reasons
        status = evaluation.status
        if assignment.timetable_status != "submitted":
            conflicts = [NOT_SUBMITTED_REASON, *conflicts]
            status = "unavailable" if status == "available" else status
        member = assignment.member
        info = CandidateInfo(
            user_id=candidate.member_id,
            name=member.name,
            student_id=member.student_id,
            department_id=member.department_id,
            department=member.department_name,
            available=status == "available",
            status=status,
            conflicts=conflicts,
            assigned_count=state.counts[candidate.member_id],
        )
        ranked.append(((not info.available, evaluation.score, info.assigned_count, info.user_id), info))

    ranked.sort(key=lambda pair: pair[0])
    return [info for _, info in ranked]


async def update_published_item(
    session: AsyncSession,
    item_id: int,
    payload: UpdatePublishedItemRequest,
    *,
    operator: str = "system",
) -> ScheduleItemRead:
    item = await require_item(session, item_id)
    async with schedule_lock(item.schedule_id):
        await session.refresh(item)
        schedule = await require_schedule(session, item.schedule_id)
        await session.refresh(schedule)
        if schedule.status != "published":
            raise ScheduleStateError(
                "Only published schedules take audited changes; edit the draft directly",
                code="schedule_not_published",
                details={"schedule_id": schedule.id},
            )
        if not payload.reason:
            raise ReasonRequiredError()
        if payload.member_id == item.member_id and payload.location_id in (None, item.location_id):
            raise ValidationError(
                "The change keeps the same member and location",
                code="no_change",
                details={"item_id": item.id},
            )

        if payload.location_id is not None and await directory_repo.get_location(session, payload.location_id) is None:
            raise ResourceNotFoundError("Location", payload.location_id)
        validation = await validate_candidate(session, item.id, payload.member_id)
        if not validation.valid:
            logger.warning(
                "Rejected reassignment of item %s to member %s: %s", item.id, payload.member_id, validation.conflicts
            )
            raise CandidateUnavailableError(
                "The selected member cannot take this duty",
                details={"member_id": payload.member_id, "conflicts": validation.conflicts},
            )

        original_member_id = item.member_id
        original_location_id = item.location_id
        new_location_id = payload.location_id if payload.location_id is not None else item.location_id
        change_type = "published_modify" if original_member_id != payload.member_id else "manual_adjust"

        async with _committing(session, "published item update"):
            item.member_id = payload.member_id
            item.location_id = new_location_id
            await session.flush()
            await change_log_repo.record_change(
                session,
                schedule_id=schedule.id,
                schedule_item_id=item.id,
                original_member_id=original_member_id,
                new_member_id=payload.member_id,
                original_location_id=original_location_id,
                new_location_id=new_location_id,
                change_type=change_type,
                reason=payload.reason,
                operator=operator,
            )
            await _refresh_fill_count(session, schedule)
            await session.flush()

        logger.info(
            "Published item %s reassigned from %s to %s by %s", item.id, original_member_id, payload.member_id, operator
        )
        await session.refresh(item)
        return ScheduleItemRead.model_validate(item)


async def publish(
    session: AsyncSession,
    schedule_id: int,
    *,
    operator: str = "system",
    min_fill_rate: float = 0.0,
) -> ScheduleInfo:
    async with schedule_lock(schedule_id):
        schedule = await require_schedule(session, schedule_id)
        await session.refresh(schedule)
        if schedule.status == "published":
            raise ScheduleStateError(
                "The schedule is already published",
                code="schedule_already_published",
                details={"schedule_id": schedule.id},
            )

        fill_rate = schedule.filled_slots / schedule.total_slots if schedule.total_slots else 0.0
        if fill_rate < min_fill_rate:
            raise CoverageShortfallError(
                f"Fill rate {fill_rate:.0%} is below the required {min_fill_rate:.0%}",
                code="fill_rate_below_policy",
                details={"fill_rate": round(fill_rate, 4), "required": min_fill_rate},
            )

        semester = await require_semester(session, schedule.semester_id)
        async with _committing(session, "publish"):
            schedule.status = "published"
            schedule.published_at = func.now()
            schedule.published_by = operator
            if semester.phase == "scheduling":
                semester.phase = "published"
            await session.flush()

        logger.info("Published schedule %s for semester %s by %s", schedule.id, semester.id, operator)
        await session.refresh(schedule)
        return await schedule_info(session, schedule)


async def list_change_logs(
    session: AsyncSession, schedule_id: int, *, page: int = 1, page_size: int = 20
) -> ChangeLogPage:
    await require_schedule(session, schedule_id)
    logs, total = await change_log_repo.list_change_logs(session, schedule_id, page=page, page_size=page_size)
    member_ids = {member_id for log in logs for member_id in (log.original_member_id, log.new_member_id) if member_id}
    names = {member.id: member.name for member in await directory_repo.list_members(session, list(member_ids))}

    items = []
    for log in logs:
        read = ChangeLogRead.model_validate(log)
        read.original_member_name = names.get(log.original_member_id)
        read.new_member_name = names.get(log.new_member_id)
        items.append(read)
    return ChangeLogPage(items=items, total=total, page=page, page_size=page_size)
