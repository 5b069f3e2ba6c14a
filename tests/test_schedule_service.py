import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from duty_scheduler.core.exceptions import (
    CandidateUnavailableError,
    ConfigurationError,
    CoverageShortfallError,
    ReasonRequiredError,
    ScheduleStateError,
    ValidationError,
)
from duty_scheduler.db.models.schedule import ScheduleChangeLog, ScheduleItem
from duty_scheduler.repositories import semester as semester_repo
from duty_scheduler.repositories import timetable as timetable_repo
from duty_scheduler.schemas.schedule import UpdateItemRequest, UpdatePublishedItemRequest
from duty_scheduler.services import schedule_service
from duty_scheduler.services.scope import check_scope

from .factories import build_unavailable_time_create, create_roster


def _item_at(info, slot_id: int, week: int = 1):
    return next(item for item in info.items if item.time_slot_id == slot_id and item.week_number == week)


@pytest.mark.anyio("asyncio")
async def test_auto_schedule_persists_full_draft(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as session:
        roster = await create_roster(session)

        response = await schedule_service.auto_schedule(session, roster.semester_id, operator="alice")

    assert response.total_slots == 8
    assert response.filled_slots == 8
    assert response.schedule.status == "draft"
    assert response.schedule.generated_by == "alice"
    assert response.schedule.generated_at is not None
    assert len(response.schedule.items) == 8
    busy_member = roster.member_ids[0]
    monday_slots = set(roster.slot_ids[:2])
    assert all(
        item.member_id != busy_member for item in response.schedule.items if item.time_slot_id in monday_slots
    )
    assert all(item.location_id == roster.location_id for item in response.schedule.items)


@pytest.mark.anyio("asyncio")
async def test_auto_schedule_uses_active_semester_when_omitted(
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    async with session_factory() as session:
        roster = await create_roster(session)
        response = await schedule_service.auto_schedule(session, None)

    assert response.schedule.semester_id == roster.semester_id


@pytest.mark.anyio("asyncio")
async def test_auto_schedule_without_active_semester_fails(
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    async with session_factory() as session:
        with pytest.raises(ConfigurationError) as excinfo:
            await schedule_service.auto_schedule(session, None)
    assert excinfo.value.code == "no_active_semester"


@pytest.mark.anyio("asyncio")
async def test_auto_schedule_requires_submitted_timetables(
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    async with session_factory() as session:
        roster = await create_roster(session, submitted=False)

        precheck = await schedule_service.precheck(session, roster.semester_id)
        assert not precheck.ready
        assert [check.code for check in precheck.checks if not check.passed] == ["submission_incomplete"]

        with pytest.raises(CoverageShortfallError) as excinfo:
            await schedule_service.auto_schedule(session, roster.semester_id)
    assert excinfo.value.code == "submission_incomplete"
    assert excinfo.value.details == {"submitted": 0, "total": 3}


@pytest.mark.anyio("asyncio")
async def test_rerun_replaces_draft_but_not_published(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as session:
        roster = await create_roster(session)
        first = await schedule_service.auto_schedule(session, roster.semester_id)
        second = await schedule_service.auto_schedule(session, roster.semester_id, strategy="optimized")

        assert second.schedule.id == first.schedule.id
        assert second.schedule.strategy == "optimized"
        item_count = await session.scalar(
            select(func.count(ScheduleItem.id)).where(ScheduleItem.schedule_id == first.schedule.id)
        )
        assert item_count == 8

        await schedule_service.publish(session, first.schedule.id, operator="alice")
        with pytest.raises(ScheduleStateError) as excinfo:
            await schedule_service.auto_schedule(session, roster.semester_id)
    assert excinfo.value.code == "schedule_published"


@pytest.mark.anyio("asyncio")
async def test_publish_twice_fails(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as session:
        roster = await create_roster(session)
        generated = await schedule_service.auto_schedule(session, roster.semester_id)

        published = await schedule_service.publish(session, generated.schedule.id, operator="alice")
        assert published.status == "published"
        assert published.published_by == "alice"
        assert published.published_at is not None

        with pytest.raises(ScheduleStateError) as excinfo:
            await schedule_service.publish(session, generated.schedule.id)
    assert excinfo.value.code == "schedule_already_published"


@pytest.mark.anyio("asyncio")
async def test_publish_enforces_minimum_fill_rate(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as session:
        roster = await create_roster(session)
        generated = await schedule_service.auto_schedule(session, roster.semester_id)
        item = generated.schedule.items[0]
        await schedule_service.update_item(session, item.id, UpdateItemRequest(member_id=None))

        with pytest.raises(CoverageShortfallError) as excinfo:
            await schedule_service.publish(session, generated.schedule.id, min_fill_rate=1.0)
    assert excinfo.value.code == "fill_rate_below_policy"


@pytest.mark.anyio("asyncio")
async def test_draft_edit_is_free_form_and_unlogged(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as session:
        roster = await create_roster(session)
        generated = await schedule_service.auto_schedule(session, roster.semester_id)
        monday = _item_at(generated.schedule, roster.slot_ids[0])

        # Draft edits skip the availability rules entirely.
        updated = await schedule_service.update_item(
            session, monday.id, UpdateItemRequest(member_id=roster.member_ids[0])
        )
        assert updated.member_id == roster.member_ids[0]

        logs = await schedule_service.list_change_logs(session, generated.schedule.id)
    assert logs.total == 0


@pytest.mark.anyio("asyncio")
async def test_published_edit_requires_reason_and_logs_once(
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    async with session_factory() as session:
        roster = await create_roster(session)
        generated = await schedule_service.auto_schedule(session, roster.semester_id)
        schedule_id = generated.schedule.id
        wednesday = _item_at(generated.schedule, roster.slot_ids[2])
        await schedule_service.publish(session, schedule_id)

        with pytest.raises(ScheduleStateError) as excinfo:
            await schedule_service.update_item(session, wednesday.id, UpdateItemRequest(member_id=None))
        assert excinfo.value.code == "schedule_not_draft"

        replacement = next(member_id for member_id in roster.member_ids if member_id != wednesday.member_id)
        with pytest.raises(ReasonRequiredError):
            await schedule_service.update_published_item(
                session, wednesday.id, UpdatePublishedItemRequest(member_id=replacement, reason="   ")
            )
        assert await session.scalar(select(func.count(ScheduleChangeLog.id))) == 0

        candidates = await schedule_service.get_candidates(session, wednesday.id)
        target = next(candidate for candidate in candidates if candidate.user_id == replacement)
        assert target.available

        updated = await schedule_service.update_published_item(
            session,
            wednesday.id,
            UpdatePublishedItemRequest(member_id=replacement, reason="Swapped for exam week"),
            operator="alice",
        )
        assert updated.member_id == replacement

        logs = await schedule_service.list_change_logs(session, schedule_id)
    assert logs.total == 1
    entry = logs.items[0]
    assert entry.change_type == "published_modify"
    assert entry.original_member_id == wednesday.member_id
    assert entry.new_member_id == replacement
    assert entry.reason == "Swapped for exam week"
    assert entry.operator == "alice"


@pytest.mark.anyio("asyncio")
async def test_published_edit_rejects_busy_member(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as session:
        roster = await create_roster(session)
        generated = await schedule_service.auto_schedule(session, roster.semester_id)
        monday = _item_at(generated.schedule, roster.slot_ids[0])
        await schedule_service.publish(session, generated.schedule.id)

        validation = await schedule_service.validate_candidate(session, monday.id, roster.member_ids[0])
        assert not validation.valid
        assert validation.conflicts == ["Course conflict: Linear Algebra"]

        with pytest.raises(CandidateUnavailableError):
            await schedule_service.update_published_item(
                session,
                monday.id,
                UpdatePublishedItemRequest(member_id=roster.member_ids[0], reason="Cover"),
            )
        assert await session.scalar(select(func.count(ScheduleChangeLog.id))) == 0


@pytest.mark.anyio("asyncio")
async def test_candidates_report_conflicts(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as session:
        roster = await create_roster(session)
        generated = await schedule_service.auto_schedule(session, roster.semester_id)
        monday = _item_at(generated.schedule, roster.slot_ids[0])

        candidates = await schedule_service.get_candidates(session, monday.id)

    by_id = {candidate.user_id: candidate for candidate in candidates}
    assert set(by_id) == set(roster.member_ids)
    busy = by_id[roster.member_ids[0]]
    assert not busy.available
    assert busy.status == "unavailable"
    assert busy.conflicts == ["Course conflict: Linear Algebra"]
    # The afternoon holder already works that Monday.
    afternoon = _item_at(generated.schedule, roster.slot_ids[1])
    assert by_id[afternoon.member_id].status == "conflict"
    assert candidates[0].available


@pytest.mark.anyio("asyncio")
async def test_scope_check_tracks_roster_drift(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as session:
        roster = await create_roster(session)
        generated = await schedule_service.auto_schedule(session, roster.semester_id)
        schedule_id = generated.schedule.id

        unchanged = await check_scope(session, schedule_id)
        assert not unchanged.changed
        assert unchanged.added_users == []
        assert unchanged.removed_users == []

        await semester_repo.set_duty_members(session, roster.semester_id, roster.member_ids[1:])
        await session.commit()

        drifted = await check_scope(session, schedule_id)
    assert drifted.changed
    assert [user.user_id for user in drifted.removed_users] == [roster.member_ids[0]]
    assert drifted.removed_users[0].name == "Member 1"
    assert drifted.added_users == []


@pytest.mark.anyio("asyncio")
async def test_declared_unavailability_is_respected(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as session:
        roster = await create_roster(session)
        await timetable_repo.create_unavailable_time(
            session,
            build_unavailable_time_create(member_id=roster.member_ids[1], semester_id=roster.semester_id),
        )
        await session.commit()

        response = await schedule_service.auto_schedule(session, roster.semester_id)

    wednesday_slot = roster.slot_ids[2]
    assert all(
        item.member_id != roster.member_ids[1]
        for item in response.schedule.items
        if item.time_slot_id == wednesday_slot
    )


@pytest.mark.anyio("asyncio")
async def test_my_schedule_lists_member_items(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as session:
        roster = await create_roster(session)
        generated = await schedule_service.auto_schedule(session, roster.semester_id)
        member_id = roster.member_ids[1]

        mine = await schedule_service.get_my_schedule(session, member_id)

    expected = [item.id for item in generated.schedule.items if item.member_id == member_id]
    assert sorted(item.id for item in mine) == sorted(expected)
    assert mine


@pytest.mark.anyio("asyncio")
async def test_published_edit_without_change_is_rejected(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as session:
        roster = await create_roster(session)
        generated = await schedule_service.auto_schedule(session, roster.semester_id)
        wednesday = _item_at(generated.schedule, roster.slot_ids[2])
        await schedule_service.publish(session, generated.schedule.id)

        with pytest.raises(ValidationError) as excinfo:
            await schedule_service.update_published_item(
                session,
                wednesday.id,
                UpdatePublishedItemRequest(
                    member_id=wednesday.member_id, location_id=wednesday.location_id, reason="nothing"
                ),
            )
        assert excinfo.value.code == "no_change"
        assert await session.scalar(select(func.count(ScheduleChangeLog.id))) == 0


@pytest.mark.anyio("asyncio")
async def test_timetable_submission_is_timestamped(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as session:
        roster = await create_roster(session)
        assignments = await semester_repo.list_assignments(session, roster.semester_id, duty_required=True)

    assert len(assignments) == 3
    assert all(assignment.timetable_status == "submitted" for assignment in assignments)
    assert all(assignment.timetable_submitted_at is not None for assignment in assignments)
