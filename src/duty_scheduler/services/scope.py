"""Roster drift between schedule generation and now."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from duty_scheduler.repositories import directory as directory_repo
from duty_scheduler.repositories import schedule as schedule_repo
from duty_scheduler.repositories import semester as semester_repo
from duty_scheduler.schemas.schedule import ScopeCheckResponse, ScopeUser
from duty_scheduler.services.schedule_service import require_schedule

logger = logging.getLogger(__name__)


async def check_scope(session: AsyncSession, schedule_id: int) -> ScopeCheckResponse:
    """Compare the eligible duty members now with those the schedule was built from.

    The baseline is the member snapshot stored at generation time; schedules
    without one fall back to the members referenced by their items. Nothing is
    written.
    """
    schedule = await require_schedule(session, schedule_id)

    baseline = await schedule_repo.list_snapshot_member_ids(session, schedule.id)
    if not baseline:
        items = await schedule_repo.list_items(session, schedule.id)
        baseline = {item.member_id for item in items if item.member_id is not None}

    current = {
        assignment.member_id
        for assignment in await semester_repo.list_assignments(session, schedule.semester_id, duty_required=True)
        if assignment.timetable_status == "submitted"
    }

    added = sorted(current - baseline)
    removed = sorted(baseline - current)
    names = {member.id: member.name for member in await directory_repo.list_members(session, added + removed)}
    if added or removed:
        logger.info("Schedule %s roster drift: +%d / -%d member(s)", schedule.id, len(added), len(removed))

    return ScopeCheckResponse(
        changed=bool(added or removed),
        added_users=[ScopeUser(user_id=member_id, name=names.get(member_id, "")) for member_id in added],
        removed_users=[ScopeUser(user_id=member_id, name=names.get(member_id, "")) for member_id in removed],
    )
