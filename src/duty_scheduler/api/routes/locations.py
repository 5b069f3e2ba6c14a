from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from duty_scheduler.db.session import get_db_session
from duty_scheduler.repositories import directory as directory_repo
from duty_scheduler.schemas.directory import LocationCreate, LocationRead, LocationUpdate

router = APIRouter()


@router.get("/", response_model=list[LocationRead])
async def list_locations(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    active_only: bool = False,
) -> list[LocationRead]:
    locations = await directory_repo.list_locations(session, active_only=active_only)
    return [LocationRead.model_validate(location) for location in locations]


@router.post("/", response_model=LocationRead, status_code=status.HTTP_201_CREATED)
async def create_location(
    payload: LocationCreate, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> LocationRead:
    location = await directory_repo.create_location(session, payload)
    await session.commit()
    await session.refresh(location)
    return LocationRead.model_validate(location)


@router.put("/{location_id}", response_model=LocationRead)
async def update_location(
    location_id: int,
    payload: LocationUpdate,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> LocationRead:
    location = await directory_repo.get_location(session, location_id)
    if not location:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Location not found")
    location = await directory_repo.update_location(session, location, payload)
    await session.commit()
    await session.refresh(location)
    return LocationRead.model_validate(location)
