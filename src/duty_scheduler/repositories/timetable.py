from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from duty_scheduler.db.models.timetable import CourseOccurrence, UnavailableTime
from duty_scheduler.schemas.timetable import CourseOccurrenceCreate, UnavailableTimeCreate


async def list_courses(
    session: AsyncSession, semester_id: int, member_ids: list[int] | None = None
) -> list[CourseOccurrence]:
    query = select(CourseOccurrence).where(CourseOccurrence.semester_id == semester_id)
    if member_ids is not None:
        query = query.where(CourseOccurrence.member_id.in_(member_ids))
    result = await session.execute(query.order_by(CourseOccurrence.member_id, CourseOccurrence.id))
    return list(result.scalars().all())


async def create_course(session: AsyncSession, payload: CourseOccurrenceCreate) -> CourseOccurrence:
    course = CourseOccurrence(**payload.model_dump())
    session.add(course)
    await session.flush()
    await session.refresh(course)
    return course


async def get_course(session: AsyncSession, course_id: int) -> CourseOccurrence | None:
    return await session.get(CourseOccurrence, course_id)


async def delete_course(session: AsyncSession, course: CourseOccurrence) -> None:
    await session.delete(course)


async def list_unavailable_times(
    session: AsyncSession, semester_id: int, member_ids: list[int] | None = None
) -> list[UnavailableTime]:
    query = select(UnavailableTime).where(UnavailableTime.semester_id == semester_id)
    if member_ids is not None:
        query = query.where(UnavailableTime.member_id.in_(member_ids))
    result = await session.execute(query.order_by(UnavailableTime.member_id, UnavailableTime.id))
    return list(result.scalars().all())


async def create_unavailable_time(session: AsyncSession, payload: UnavailableTimeCreate) -> UnavailableTime:
    entry = UnavailableTime(**payload.model_dump())
    session.add(entry)
    await session.flush()
    await session.refresh(entry)
    return entry


async def get_unavailable_time(session: AsyncSession, entry_id: int) -> UnavailableTime | None:
    return await session.get(UnavailableTime, entry_id)


async def delete_unavailable_time(session: AsyncSession, entry: UnavailableTime) -> None:
    await session.delete(entry)
