from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from duty_scheduler.db.models.semester import DutyAssignment, Semester, TimeSlot
from duty_scheduler.schemas.semester import SemesterCreate, SemesterUpdate, TimeSlotCreate, TimeSlotUpdate


async def list_semesters(session: AsyncSession) -> list[Semester]:
    result = await session.execute(select(Semester).order_by(Semester.start_date.desc()))
    return list(result.scalars().all())


async def create_semester(session: AsyncSession, payload: SemesterCreate) -> Semester:
    semester = Semester(**payload.model_dump())
    session.add(semester)
    await session.flush()
    await session.refresh(semester)
    return semester


async def get_semester(session: AsyncSession, semester_id: int) -> Semester | None:
    return await session.get(Semester, semester_id)


async def get_active_semester(session: AsyncSession) -> Semester | None:
    result = await session.execute(select(Semester).where(Semester.is_active.is_(True)))
    return result.scalars().first()


async def update_semester(session: AsyncSession, semester: Semester, payload: SemesterUpdate) -> Semester:
    data = payload.model_dump(exclude_unset=True)
    for field, value in data.items():
        setattr(semester, field, value)
    await session.flush()
    await session.refresh(semester)
    return semester


async def activate_semester(session: AsyncSession, semester: Semester) -> Semester:
    # Clear first so the partial unique index never sees two active rows.
    await session.execute(
        update(Semester).where(Semester.is_active.is_(True), Semester.id != semester.id).values(is_active=False)
    )
    await session.flush()
    semester.is_active = True
    await session.flush()
    await session.refresh(semester)
    return semester


async def list_time_slots(session: AsyncSession, semester_id: int | None = None) -> list[TimeSlot]:
    query = select(TimeSlot).order_by(TimeSlot.day_of_week, TimeSlot.start_time, TimeSlot.id)
    if semester_id is not None:
        query = query.where(or_(TimeSlot.semester_id == semester_id, TimeSlot.semester_id.is_(None)))
    result = await session.execute(query)
    return list(result.scalars().all())


async def list_active_time_slots(session: AsyncSession, semester_id: int) -> list[TimeSlot]:
    """Active slots scoped to the semester plus active global slots."""

    return [slot for slot in await list_time_slots(session, semester_id) if slot.is_active]


async def create_time_slot(session: AsyncSession, payload: TimeSlotCreate) -> TimeSlot:
    slot = TimeSlot(**payload.model_dump())
    session.add(slot)
    await session.flush()
    await session.refresh(slot)
    return slot


async def get_time_slot(session: AsyncSession, slot_id: int) -> TimeSlot | None:
    return await session.get(TimeSlot, slot_id)


async def update_time_slot(session: AsyncSession, slot: TimeSlot, payload: TimeSlotUpdate) -> TimeSlot:
    data = payload.model_dump(exclude_unset=True)
    for field, value in data.items():
        setattr(slot, field, value)
    await session.flush()
    await session.refresh(slot)
    return slot


async def list_assignments(
    session: AsyncSession, semester_id: int, *, duty_required: bool | None = None
) -> list[DutyAssignment]:
    query = select(DutyAssignment).where(DutyAssignment.semester_id == semester_id)
    if duty_required is not None:
        query = query.where(DutyAssignment.duty_required.is_(duty_required))
    result = await session.execute(query.order_by(DutyAssignment.member_id))
    return list(result.scalars().all())


async def get_assignment(session: AsyncSession, semester_id: int, member_id: int) -> DutyAssignment | None:
    result = await session.execute(
        select(DutyAssignment)
        .where(DutyAssignment.semester_id == semester_id)
        .where(DutyAssignment.member_id == member_id)
    )
    return result.scalars().first()


async def set_duty_members(session: AsyncSession, semester_id: int, member_ids: list[int]) -> list[DutyAssignment]:
    wanted = set(member_ids)
    existing = {assignment.member_id: assignment for assignment in await list_assignments(session, semester_id)}
    for member_id, assignment in existing.items():
        assignment.duty_required = member_id in wanted
    for member_id in sorted(wanted - existing.keys()):
        session.add(DutyAssignment(member_id=member_id, semester_id=semester_id, duty_required=True))
    await session.flush()
    return await list_assignments(session, semester_id, duty_required=True)


async def mark_timetable_submitted(session: AsyncSession, assignment: DutyAssignment) -> DutyAssignment:
    assignment.timetable_status = "submitted"
    assignment.timetable_submitted_at = func.now()
    await session.flush()
    await session.refresh(assignment)
    return assignment


async def submission_counts(session: AsyncSession, semester_id: int) -> tuple[int, int]:
    """Return ``(submitted, total)`` among the semester's duty members."""

    result = await session.execute(
        select(
            func.count(DutyAssignment.id),
            func.count(DutyAssignment.id).filter(DutyAssignment.timetable_status == "submitted"),
        )
        .where(DutyAssignment.semester_id == semester_id)
        .where(DutyAssignment.duty_required.is_(True))
    )
    total, submitted = result.one()
    return submitted, total
