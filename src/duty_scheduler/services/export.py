"""Spreadsheet export of a semester's duty schedule."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from sqlalchemy.ext.asyncio import AsyncSession

from duty_scheduler.core.exceptions import ConfigurationError, ResourceNotFoundError
from duty_scheduler.db.models.schedule import ScheduleItem
from duty_scheduler.repositories import schedule as schedule_repo
from duty_scheduler.services.schedule_service import resolve_semester

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
SHEET_TITLE = "Schedule"
DAY_NAMES = {1: "Mon", 2: "Tue", 3: "Wed", 4: "Thu", 5: "Fri", 6: "Sat", 7: "Sun"}
UNASSIGNED = "Unassigned"
NO_CELL = "-"
FIXED_COLUMNS = ("Day", "Time slot", "Time")

HEADER_FONT = Font(bold=True, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")


@dataclass
class ScheduleExport:
    content: bytes
    filename: str
    media_type: str = XLSX_MEDIA_TYPE


def cell_text(item: ScheduleItem) -> str:
    if item.member is None:
        return UNASSIGNED
    if item.member.department_name:
        return f"{item.member.name} ({item.member.department_name})"
    return item.member.name


def build_schedule_workbook(title: str, items: list[ScheduleItem]) -> Workbook:
    """
    Lay the schedule out as one row per time slot and one column per week.

    The first row holds the merged title, the second the headers. Cells with
    no schedule item for that week read ``-``.
    """
    weeks = sorted({item.week_number for item in items})
    slots = {item.time_slot.id: item.time_slot for item in items}
    ordered_slots = sorted(slots.values(), key=lambda slot: (slot.day_of_week, slot.start_time, slot.id))
    texts = {(item.week_number, item.time_slot_id): cell_text(item) for item in items}

    workbook = Workbook()
    sheet = workbook.active
    sheet.title = SHEET_TITLE

    last_column = len(FIXED_COLUMNS) + len(weeks)
    sheet.cell(row=1, column=1, value=f"{title} duty schedule")
    sheet.merge_cells(start_row=1, start_column=1, end_row=1, end_column=last_column)

    headers = [*FIXED_COLUMNS, *(f"Week {week}" for week in weeks)]
    for column, header in enumerate(headers, start=1):
        sheet.cell(row=2, column=column, value=header)
    for row in (1, 2):
        for column in range(1, last_column + 1):
            cell = sheet.cell(row=row, column=column)
            cell.font = HEADER_FONT
            cell.fill = HEADER_FILL
            cell.alignment = Alignment(horizontal="center", vertical="center")

    for row, slot in enumerate(ordered_slots, start=3):
        sheet.cell(row=row, column=1, value=DAY_NAMES.get(slot.day_of_week, str(slot.day_of_week)))
        sheet.cell(row=row, column=2, value=slot.name)
        sheet.cell(row=row, column=3, value=f"{slot.start_time}-{slot.end_time}")
        for offset, week in enumerate(weeks):
            sheet.cell(row=row, column=len(FIXED_COLUMNS) + 1 + offset, value=texts.get((week, slot.id), NO_CELL))

    for column, width in enumerate((8, 16, 14), start=1):
        sheet.column_dimensions[get_column_letter(column)].width = width
    for column in range(len(FIXED_COLUMNS) + 1, last_column + 1):
        sheet.column_dimensions[get_column_letter(column)].width = 24
    return workbook


async def export_schedule(session: AsyncSession, semester_id: int | None = None) -> ScheduleExport:
    semester = await resolve_semester(session, semester_id)
    if semester is None:
        raise ConfigurationError("No semester given and no semester is active", code="no_active_semester")
    schedule = await schedule_repo.get_schedule_for_semester(session, semester.id)
    if schedule is None:
        raise ResourceNotFoundError("Schedule", f"semester {semester.id}")
    items = await schedule_repo.list_items(session, schedule.id)
    if not items:
        raise ConfigurationError("The schedule has no items to export", code="schedule_empty")

    buffer = BytesIO()
    build_schedule_workbook(semester.name, items).save(buffer)
    logger.info("Exported schedule %s for semester %s (%d cells)", schedule.id, semester.id, len(items))
    return ScheduleExport(content=buffer.getvalue(), filename=f"duty_schedule_{semester.name}.xlsx")
