from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from duty_scheduler.db.session import get_db_session
from duty_scheduler.repositories import directory as directory_repo
from duty_scheduler.schemas.directory import DepartmentCreate, DepartmentRead

router = APIRouter()


@router.get("/", response_model=list[DepartmentRead])
async def list_departments(
    session: Annotated[AsyncSession, Depends(get_db_session)]
) -> list[DepartmentRead]:
    departments = await directory_repo.list_departments(session)
    return [DepartmentRead.model_validate(department) for department in departments]


@router.post("/", response_model=DepartmentRead, status_code=status.HTTP_201_CREATED)
async def create_department(
    payload: DepartmentCreate, session: Annotated[AsyncSession, Depends(get_db_session)]
) -> DepartmentRead:
    department = await directory_repo.create_department(session, payload)
    await session.commit()
    await session.refresh(department)
    return DepartmentRead.model_validate(department)
