from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from duty_scheduler.db.session import get_db_session
from duty_scheduler.repositories import directory as directory_repo
from duty_scheduler.schemas.directory import MemberCreate, MemberRead, MemberUpdate

router = APIRouter()


async def _ensure_department(session: AsyncSession, department_id: int | None) -> None:
    if department_id is not None and not await directory_repo.get_department(session, department_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Department not found")


@router.get("/", response_model=list[MemberRead])
async def list_members(
    session: Annotated[AsyncSession, Depends(get_db_session)]
) -> list[MemberRead]:
    members = await directory_repo.list_members(session)
    return [MemberRead.model_validate(member) for member in members]


@router.post("/", response_model=MemberRead, status_code=status.HTTP_201_CREATED)
async def create_member(
    payload: MemberCreate, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> MemberRead:
    await _ensure_department(session, payload.department_id)
    member = await directory_repo.create_member(session, payload)
    await session.commit()
    await session.refresh(member)
    return MemberRead.model_validate(member)


@router.get("/{member_id}", response_model=MemberRead)
async def read_member(
    member_id: int, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> MemberRead:
    member = await directory_repo.get_member(session, member_id)
    if not member:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")
    return MemberRead.model_validate(member)


@router.put("/{member_id}", response_model=MemberRead)
async def update_member(
    member_id: int,
    payload: MemberUpdate,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> MemberRead:
    member = await directory_repo.get_member(session, member_id)
    if not member:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")
    await _ensure_department(session, payload.department_id)
    member = await directory_repo.update_member(session, member, payload)
    await session.commit()
    await session.refresh(member)
    return MemberRead.model_validate(member)
