from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from duty_scheduler.api.deps import get_operator
from duty_scheduler.core.config import Settings, get_settings
from duty_scheduler.db.session import get_db_session
from duty_scheduler.schemas.schedule import (
    AutoScheduleRequest,
    AutoScheduleResponse,
    CandidateInfo,
    ChangeLogPage,
    PrecheckResponse,
    ScheduleInfo,
    ScheduleItemRead,
    ScopeCheckResponse,
    UpdateItemRequest,
    UpdatePublishedItemRequest,
    ValidateCandidateRequest,
    ValidateCandidateResponse,
)
from duty_scheduler.services import schedule_service
from duty_scheduler.services.scope import check_scope

router = APIRouter()


@router.post("/auto", response_model=AutoScheduleResponse)
async def auto_schedule(
    payload: AutoScheduleRequest,
    session: Annotated[AsyncSession, Depends(get_db_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    operator: Annotated[str, Depends(get_operator)],
) -> AutoScheduleResponse:
    return await schedule_service.auto_schedule(
        session,
        payload.semester_id,
        strategy=payload.strategy,
        operator=operator,
        time_limit_seconds=settings.solver_time_limit_seconds,
    )


@router.get("", response_model=ScheduleInfo | None)
async def get_schedule(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    semester_id: int | None = None,
) -> ScheduleInfo | None:
    return await schedule_service.get_schedule(session, semester_id)


@router.get("/my", response_model=list[ScheduleItemRead])
async def get_my_schedule(
    member_id: int,
    session: Annotated[AsyncSession, Depends(get_db_session)],
    semester_id: int | None = None,
) -> list[ScheduleItemRead]:
    return await schedule_service.get_my_schedule(session, member_id, semester_id)


@router.get("/precheck", response_model=PrecheckResponse)
async def precheck(
    semester_id: int,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> PrecheckResponse:
    return await schedule_service.precheck(session, semester_id)


@router.put("/items/{item_id}", response_model=ScheduleItemRead)
async def update_item(
    item_id: int,
    payload: UpdateItemRequest,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> ScheduleItemRead:
    return await schedule_service.update_item(session, item_id, payload)


@router.post("/items/{item_id}/validate", response_model=ValidateCandidateResponse)
async def validate_candidate(
    item_id: int,
    payload: ValidateCandidateRequest,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> ValidateCandidateResponse:
    return await schedule_service.validate_candidate(session, item_id, payload.member_id)


@router.get("/items/{item_id}/candidates", response_model=list[CandidateInfo])
async def get_candidates(
    item_id: int,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> list[CandidateInfo]:
    return await schedule_service.get_candidates(session, item_id)


@router.post("/{schedule_id}/publish", response_model=ScheduleInfo)
async def publish_schedule(
    schedule_id: int,
    session: Annotated[AsyncSession, Depends(get_db_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    operator: Annotated[str, Depends(get_operator)],
) -> ScheduleInfo:
    return await schedule_service.publish(
        session,
        schedule_id,
        operator=operator,
        min_fill_rate=settings.publish_min_fill_rate,
    )


@router.put("/published/items/{item_id}", response_model=ScheduleItemRead)
async def update_published_item(
    item_id: int,
    payload: UpdatePublishedItemRequest,
    session: Annotated[AsyncSession, Depends(get_db_session)],
    operator: Annotated[str, Depends(get_operator)],
) -> ScheduleItemRead:
    return await schedule_service.update_published_item(session, item_id, payload, operator=operator)


@router.get("/change-logs", response_model=ChangeLogPage)
async def list_change_logs(
    schedule_id: int,
    session: Annotated[AsyncSession, Depends(get_db_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int | None, Query(ge=1)] = None,
) -> ChangeLogPage:
    size = min(page_size or settings.default_page_size, settings.max_page_size)
    return await schedule_service.list_change_logs(session, schedule_id, page=page, page_size=size)


@router.post("/{schedule_id}/scope-check", response_model=ScopeCheckResponse)
async def scope_check(
    schedule_id: int,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> ScopeCheckResponse:
    return await check_scope(session, schedule_id)
