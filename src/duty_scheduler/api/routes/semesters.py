from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from duty_scheduler.core.exceptions import ConcurrencyConflictError, ResourceNotFoundError, ValidationError
from duty_scheduler.db.session import get_db_session
from duty_scheduler.repositories import directory as directory_repo
from duty_scheduler.repositories import semester as semester_repo
from duty_scheduler.schemas.semester import (
    DutyAssignmentRead,
    DutyMembersUpdate,
    PhaseCheckResponse,
    PhaseTransitionRequest,
    SemesterCreate,
    SemesterRead,
    SemesterUpdate,
)
from duty_scheduler.services.semester_phase import check_phase, transition_phase

router = APIRouter()


async def _get_semester_or_404(session: AsyncSession, semester_id: int):
    semester = await semester_repo.get_semester(session, semester_id)
    if not semester:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Semester not found")
    return semester


@router.get("/", response_model=list[SemesterRead])
async def list_semesters(
    session: Annotated[AsyncSession, Depends(get_db_session)]
) -> list[SemesterRead]:
    semesters = await semester_repo.list_semesters(session)
    return [SemesterRead.model_validate(semester) for semester in semesters]


@router.post("/", response_model=SemesterRead, status_code=status.HTTP_201_CREATED)
async def create_semester(
    payload: SemesterCreate, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> SemesterRead:
    semester = await semester_repo.create_semester(session, payload)
    await session.commit()
    await session.refresh(semester)
    return SemesterRead.model_validate(semester)


@router.get("/active", response_model=SemesterRead | None)
async def read_active_semester(
    session: Annotated[AsyncSession, Depends(get_db_session)]
) -> SemesterRead | None:
    semester = await semester_repo.get_active_semester(session)
    return SemesterRead.model_validate(semester) if semester else None


@router.get("/{semester_id}", response_model=SemesterRead)
async def read_semester(
    semester_id: int, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> SemesterRead:
    semester = await _get_semester_or_404(session, semester_id)
    return SemesterRead.model_validate(semester)


@router.put("/{semester_id}", response_model=SemesterRead)
async def update_semester(
    semester_id: int,
    payload: SemesterUpdate,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> SemesterRead:
    semester = await _get_semester_or_404(session, semester_id)
    start_date = payload.start_date or semester.start_date
    end_date = payload.end_date or semester.end_date
    if end_date <= start_date:
        raise ValidationError(
            "end_date must be after start_date",
            code="invalid_semester_dates",
            details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
        )
    semester = await semester_repo.update_semester(session, semester, payload)
    await session.commit()
    await session.refresh(semester)
    return SemesterRead.model_validate(semester)


@router.post("/{semester_id}/activate", response_model=SemesterRead)
async def activate_semester(
    semester_id: int, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> SemesterRead:
    semester = await _get_semester_or_404(session, semester_id)
    try:
        semester = await semester_repo.activate_semester(session, semester)
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise ConcurrencyConflictError(
            "Another semester was activated concurrently; retry the request",
            details={"operation": "activate_semester", "semester_id": semester_id},
        ) from exc
    await session.refresh(semester)
    return SemesterRead.model_validate(semester)


@router.get("/{semester_id}/phase", response_model=PhaseCheckResponse)
async def read_phase(
    semester_id: int, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> PhaseCheckResponse:
    semester = await _get_semester_or_404(session, semester_id)
    return await check_phase(session, semester)


@router.post("/{semester_id}/phase", response_model=SemesterRead)
async def change_phase(
    semester_id: int,
    payload: PhaseTransitionRequest,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> SemesterRead:
    semester = await _get_semester_or_404(session, semester_id)
    semester = await transition_phase(session, semester, payload.target_phase)
    await session.commit()
    await session.refresh(semester)
    return SemesterRead.model_validate(semester)


@router.get("/{semester_id}/duty-members", response_model=list[DutyAssignmentRead])
async def list_duty_members(
    semester_id: int, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> list[DutyAssignmentRead]:
    await _get_semester_or_404(session, semester_id)
    assignments = await semester_repo.list_assignments(session, semester_id, duty_required=True)
    return [DutyAssignmentRead.model_validate(assignment) for assignment in assignments]


@router.put("/{semester_id}/duty-members", response_model=list[DutyAssignmentRead])
async def update_duty_members(
    semester_id: int,
    payload: DutyMembersUpdate,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> list[DutyAssignmentRead]:
    await _get_semester_or_404(session, semester_id)
    member_ids = sorted(set(payload.member_ids))
    known = {member.id for member in await directory_repo.list_members(session, member_ids)}
    missing = [member_id for member_id in member_ids if member_id not in known]
    if missing:
        raise ResourceNotFoundError("Member", missing[0])
    assignments = await semester_repo.set_duty_members(session, semester_id, member_ids)
    await session.commit()
    return [DutyAssignmentRead.model_validate(assignment) for assignment in assignments]
