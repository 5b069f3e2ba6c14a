from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from duty_scheduler.db.models.schedule import Schedule, ScheduleItem, ScheduleMemberSnapshot
from duty_scheduler.db.models.semester import TimeSlot
from duty_scheduler.services.scheduler import SchedulingCandidate, SchedulingResult


async def get_schedule(session: AsyncSession, schedule_id: int) -> Schedule | None:
    return await session.get(Schedule, schedule_id)


async def get_schedule_for_semester(session: AsyncSession, semester_id: int) -> Schedule | None:
    result = await session.execute(select(Schedule).where(Schedule.semester_id == semester_id))
    return result.scalars().first()


async def store_generation(
    session: AsyncSession,
    *,
    semester_id: int,
    schedule: Schedule | None,
    result: SchedulingResult,
    candidates: list[SchedulingCandidate],
    strategy: str,
    operator: str,
) -> Schedule:
    """Write a generated draft, replacing the items and snapshot of an existing one."""

    now = func.now()
    if schedule is None:
        schedule = Schedule(semester_id=semester_id, status="draft")
        session.add(schedule)
    else:
        await session.execute(delete(ScheduleItem).where(ScheduleItem.schedule_id == schedule.id))
        await session.execute(
            delete(ScheduleMemberSnapshot).where(ScheduleMemberSnapshot.schedule_id == schedule.id)
        )

    schedule.strategy = strategy
    schedule.total_slots = result.total_slots
    schedule.filled_slots = result.filled_slots
    schedule.warnings = [warning.message for warning in result.warnings]
    schedule.generated_at = now
    schedule.generated_by = operator
    await session.flush()

    session.add_all(
        ScheduleItem(
            schedule_id=schedule.id,
            week_number=assignment.week_number,
            time_slot_id=assignment.time_slot_id,
            member_id=assignment.member_id,
            location_id=assignment.location_id,
        )
        for assignment in result.assignments
    )
    session.add_all(
        ScheduleMemberSnapshot(
            schedule_id=schedule.id,
            member_id=candidate.member_id,
            department_id=candidate.department_id,
            snapshot_at=now,
        )
        for candidate in candidates
    )
    await session.flush()
    await session.refresh(schedule)
    return schedule


async def list_items(
    session: AsyncSession, schedule_id: int, *, member_id: int | None = None
) -> list[ScheduleItem]:
    query = (
        select(ScheduleItem)
        .join(TimeSlot, ScheduleItem.time_slot_id == TimeSlot.id)
        .where(ScheduleItem.schedule_id == schedule_id)
    )
    if member_id is not None:
        query = query.where(ScheduleItem.member_id == member_id)
    result = await session.execute(
        query.order_by(ScheduleItem.week_number, TimeSlot.day_of_week, TimeSlot.start_time, ScheduleItem.id)
    )
    return list(result.scalars().all())


async def get_item(session: AsyncSession, item_id: int) -> ScheduleItem | None:
    return await session.get(ScheduleItem, item_id)


async def list_snapshot_member_ids(session: AsyncSession, schedule_id: int) -> set[int]:
    result = await session.execute(
        select(ScheduleMemberSnapshot.member_id).where(ScheduleMemberSnapshot.schedule_id == schedule_id)
    )
    return set(result.scalars().all())
