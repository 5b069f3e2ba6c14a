from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from duty_scheduler.core.exceptions import ResourceNotFoundError
from duty_scheduler.db.session import get_db_session
from duty_scheduler.repositories import directory as directory_repo
from duty_scheduler.repositories import semester as semester_repo
from duty_scheduler.repositories import timetable as timetable_repo
from duty_scheduler.schemas.semester import DutyAssignmentRead
from duty_scheduler.schemas.timetable import (
    CourseOccurrenceCreate,
    CourseOccurrenceRead,
    TimetableSubmitRequest,
    UnavailableTimeCreate,
    UnavailableTimeRead,
)

router = APIRouter()


async def _ensure_owner(session: AsyncSession, member_id: int, semester_id: int) -> None:
    if not await directory_repo.get_member(session, member_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")
    if not await semester_repo.get_semester(session, semester_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Semester not found")


@router.get("/courses", response_model=list[CourseOccurrenceRead])
async def list_courses(
    semester_id: int,
    session: Annotated[AsyncSession, Depends(get_db_session)],
    member_id: int | None = None,
) -> list[CourseOccurrenceRead]:
    member_ids = [member_id] if member_id is not None else None
    courses = await timetable_repo.list_courses(session, semester_id, member_ids)
    return [CourseOccurrenceRead.model_validate(course) for course in courses]


@router.post("/courses", response_model=CourseOccurrenceRead, status_code=status.HTTP_201_CREATED)
async def create_course(
    payload: CourseOccurrenceCreate, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> CourseOccurrenceRead:
    await _ensure_owner(session, payload.member_id, payload.semester_id)
    course = await timetable_repo.create_course(session, payload)
    await session.commit()
    await session.refresh(course)
    return CourseOccurrenceRead.model_validate(course)


@router.delete("/courses/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_course(
    course_id: int, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> None:
    course = await timetable_repo.get_course(session, course_id)
    if not course:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")
    await timetable_repo.delete_course(session, course)
    await session.commit()


@router.get("/unavailable-times", response_model=list[UnavailableTimeRead])
async def list_unavailable_times(
    semester_id: int,
    session: Annotated[AsyncSession, Depends(get_db_session)],
    member_id: int | None = None,
) -> list[UnavailableTimeRead]:
    member_ids = [member_id] if member_id is not None else None
    entries = await timetable_repo.list_unavailable_times(session, semester_id, member_ids)
    return [UnavailableTimeRead.model_validate(entry) for entry in entries]


@router.post("/unavailable-times", response_model=UnavailableTimeRead, status_code=status.HTTP_201_CREATED)
async def create_unavailable_time(
    payload: UnavailableTimeCreate, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> UnavailableTimeRead:
    await _ensure_owner(session, payload.member_id, payload.semester_id)
    entry = await timetable_repo.create_unavailable_time(session, payload)
    await session.commit()
    await session.refresh(entry)
    return UnavailableTimeRead.model_validate(entry)


@router.delete("/unavailable-times/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_unavailable_time(
    entry_id: int, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> None:
    entry = await timetable_repo.get_unavailable_time(session, entry_id)
    if not entry:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unavailable time not found")
    await timetable_repo.delete_unavailable_time(session, entry)
    await session.commit()


@router.post("/submit", response_model=DutyAssignmentRead)
async def submit_timetable(
    payload: TimetableSubmitRequest, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> DutyAssignmentRead:
    """Mark a duty member's timetable as complete for the semester."""
    assignment = await semester_repo.get_assignment(session, payload.semester_id, payload.member_id)
    if assignment is None or not assignment.duty_required:
        raise ResourceNotFoundError("Duty assignment", payload.member_id)
    assignment = await semester_repo.mark_timetable_submitted(session, assignment)
    await session.commit()
    return DutyAssignmentRead.model_validate(assignment)
