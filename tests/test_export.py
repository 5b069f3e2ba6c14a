from io import BytesIO
from urllib.parse import quote

import pytest
from httpx import AsyncClient
from openpyxl import load_workbook
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from duty_scheduler.core.exceptions import ResourceNotFoundError
from duty_scheduler.schemas.schedule import UpdateItemRequest
from duty_scheduler.services import schedule_service
from duty_scheduler.services.export import XLSX_MEDIA_TYPE, export_schedule

from .factories import create_roster


def _rows(content: bytes) -> list[tuple]:
    workbook = load_workbook(BytesIO(content))
    assert workbook.sheetnames == ["Schedule"]
    return list(workbook["Schedule"].iter_rows(values_only=True))


@pytest.mark.anyio("asyncio")
async def test_export_lays_out_slots_by_week(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as session:
        roster = await create_roster(session)
        generated = await schedule_service.auto_schedule(session, roster.semester_id)
        friday_week_two = next(
            item
            for item in generated.schedule.items
            if item.time_slot_id == roster.slot_ids[3] and item.week_number == 2
        )
        await schedule_service.update_item(session, friday_week_two.id, UpdateItemRequest(member_id=None))

        export = await export_schedule(session, roster.semester_id)

    assert export.filename == "duty_schedule_2024 Autumn.xlsx"
    assert export.media_type == XLSX_MEDIA_TYPE

    rows = _rows(export.content)
    assert rows[0][0] == "2024 Autumn duty schedule"
    assert rows[1] == ("Day", "Time slot", "Time", "Week 1", "Week 2")
    assert [row[:3] for row in rows[2:]] == [
        ("Mon", "Slot 1", "08:00-10:00"),
        ("Mon", "Slot 2", "14:00-16:00"),
        ("Wed", "Slot 3", "10:00-12:00"),
        ("Fri", "Slot 4", "14:00-16:00"),
    ]
    assert rows[5][4] == "Unassigned"

    expected = {f"Member {index} (Department {index})" for index in range(1, 4)}
    duty_cells = [value for row in rows[2:] for value in row[3:] if value != "Unassigned"]
    assert len(duty_cells) == 7
    assert set(duty_cells) <= expected
    monday_cells = [value for row in rows[2:4] for value in row[3:]]
    assert "Member 1 (Department 1)" not in monday_cells


@pytest.mark.anyio("asyncio")
async def test_export_requires_a_schedule(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as session:
        roster = await create_roster(session)

        with pytest.raises(ResourceNotFoundError) as excinfo:
            await export_schedule(session, roster.semester_id)
    assert excinfo.value.code == "schedule_not_found"


@pytest.mark.anyio("asyncio")
async def test_export_endpoint_downloads_workbook(
    api_client: AsyncClient, session_factory: async_sessionmaker[AsyncSession]
) -> None:
    async with session_factory() as session:
        roster = await create_roster(session)

    missing = await api_client.get("/api/export/schedule")
    assert missing.status_code == 404
    assert missing.json()["code"] == "schedule_not_found"

    generated = await api_client.post("/api/schedules/auto", json={"semester_id": roster.semester_id})
    assert generated.status_code == 200

    response = await api_client.get("/api/export/schedule", params={"semester_id": roster.semester_id})
    assert response.status_code == 200
    assert response.headers["content-type"] == XLSX_MEDIA_TYPE
    assert response.headers["content-disposition"] == (
        f"attachment; filename*=UTF-8''{quote('duty_schedule_2024 Autumn.xlsx')}"
    )
    rows = _rows(response.content)
    assert len(rows) == 2 + len(roster.slot_ids)
