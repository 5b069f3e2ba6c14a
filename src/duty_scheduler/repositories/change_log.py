from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from duty_scheduler.db.models.schedule import ScheduleChangeLog


async def record_change(
    session: AsyncSession,
    *,
    schedule_id: int,
    schedule_item_id: int,
    original_member_id: int | None,
    new_member_id: int | None,
    original_location_id: int | None,
    new_location_id: int | None,
    change_type: str,
    reason: str,
    operator: str,
) -> ScheduleChangeLog:
    entry = ScheduleChangeLog(
        schedule_id=schedule_id,
        schedule_item_id=schedule_item_id,
        original_member_id=original_member_id,
        new_member_id=new_member_id,
        original_location_id=original_location_id,
        new_location_id=new_location_id,
        change_type=change_type,
        reason=reason,
        operator=operator,
    )
    session.add(entry)
    await session.flush()
    await session.refresh(entry)
    return entry


async def list_change_logs(
    session: AsyncSession, schedule_id: int, *, page: int = 1, page_size: int = 20
) -> tuple[list[ScheduleChangeLog], int]:
    total = await session.scalar(
        select(func.count(ScheduleChangeLog.id)).where(ScheduleChangeLog.schedule_id == schedule_id)
    )
    result = await session.execute(
        select(ScheduleChangeLog)
        .where(ScheduleChangeLog.schedule_id == schedule_id)
        .order_by(ScheduleChangeLog.created_at.desc(), ScheduleChangeLog.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(result.scalars().all()), int(total or 0)
