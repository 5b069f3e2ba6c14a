from typing import Annotated
from urllib.parse import quote

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from duty_scheduler.db.session import get_db_session
from duty_scheduler.services.export import XLSX_MEDIA_TYPE, export_schedule

router = APIRouter()


@router.get(
    "/schedule",
    response_class=Response,
    responses={200: {"content": {XLSX_MEDIA_TYPE: {}}}},
)
async def download_schedule(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    semester_id: int | None = None,
) -> Response:
    """Download the semester's schedule as an .xlsx workbook."""
    export = await export_schedule(session, semester_id)
    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(export.filename)}"},
    )
