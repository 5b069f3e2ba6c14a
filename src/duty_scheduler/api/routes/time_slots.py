from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from duty_scheduler.core.exceptions import ValidationError
from duty_scheduler.db.session import get_db_session
from duty_scheduler.repositories import semester as semester_repo
from duty_scheduler.schemas.semester import TimeSlotCreate, TimeSlotRead, TimeSlotUpdate

router = APIRouter()


@router.get("/", response_model=list[TimeSlotRead])
async def list_time_slots(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    semester_id: int | None = None,
) -> list[TimeSlotRead]:
    slots = await semester_repo.list_time_slots(session, semester_id)
    return [TimeSlotRead.model_validate(slot) for slot in slots]


@router.post("/", response_model=TimeSlotRead, status_code=status.HTTP_201_CREATED)
async def create_time_slot(
    payload: TimeSlotCreate, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> TimeSlotRead:
    if payload.semester_id is not None and not await semester_repo.get_semester(session, payload.semester_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Semester not found")
    slot = await semester_repo.create_time_slot(session, payload)
    await session.commit()
    await session.refresh(slot)
    return TimeSlotRead.model_validate(slot)


@router.put("/{slot_id}", response_model=TimeSlotRead)
async def update_time_slot(
    slot_id: int,
    payload: TimeSlotUpdate,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> TimeSlotRead:
    slot = await semester_repo.get_time_slot(session, slot_id)
    if not slot:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Time slot not found")
    start_time = payload.start_time or slot.start_time
    end_time = payload.end_time or slot.end_time
    if end_time <= start_time:
        raise ValidationError(
            "end_time must be after start_time",
            code="invalid_time_range",
            details={"start_time": start_time, "end_time": end_time},
        )
    slot = await semester_repo.update_time_slot(session, slot, payload)
    await session.commit()
    await session.refresh(slot)
    return TimeSlotRead.model_validate(slot)
