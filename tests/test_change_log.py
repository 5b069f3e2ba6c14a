import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from duty_scheduler.repositories import change_log as change_log_repo
from duty_scheduler.services import schedule_service

from .factories import create_roster


@pytest.mark.anyio("asyncio")
async def test_change_logs_page_newest_first(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as session:
        roster = await create_roster(session)
        generated = await schedule_service.auto_schedule(session, roster.semester_id)
        schedule_id = generated.schedule.id
        item_id = generated.schedule.items[0].id

        for index in range(3):
            await change_log_repo.record_change(
                session,
                schedule_id=schedule_id,
                schedule_item_id=item_id,
                original_member_id=roster.member_ids[index % 3],
                new_member_id=roster.member_ids[(index + 1) % 3],
                original_location_id=None,
                new_location_id=None,
                change_type="published_modify",
                reason=f"swap {index}",
                operator="alice",
            )
        await session.commit()

        first_page, total = await change_log_repo.list_change_logs(session, schedule_id, page=1, page_size=2)
        second_page, _ = await change_log_repo.list_change_logs(session, schedule_id, page=2, page_size=2)
        named = await schedule_service.list_change_logs(session, schedule_id, page=1, page_size=1)

    assert total == 3
    assert [entry.reason for entry in first_page] == ["swap 2", "swap 1"]
    assert [entry.reason for entry in second_page] == ["swap 0"]
    assert named.items[0].original_member_name == "Member 3"
    assert named.items[0].new_member_name == "Member 1"
