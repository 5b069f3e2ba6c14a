import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from duty_scheduler.core.exceptions import PhaseTransitionError
from duty_scheduler.repositories import semester as semester_repo
from duty_scheduler.services import schedule_service
from duty_scheduler.services.semester_phase import check_phase, transition_phase

from .factories import build_semester_create, create_roster


@pytest.mark.anyio("asyncio")
async def test_empty_semester_cannot_leave_configuring(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as session:
        semester = await semester_repo.create_semester(session, build_semester_create())
        await session.commit()

        result = await check_phase(session, semester)
        assert result.phase == "configuring"
        assert not result.can_advance
        assert {check.code for check in result.checks if not check.passed} == {
            "time_slots",
            "locations",
            "duty_members",
        }

        with pytest.raises(PhaseTransitionError) as excinfo:
            await transition_phase(session, semester, "collecting")
    assert excinfo.value.code == "phase_preconditions_unmet"


@pytest.mark.anyio("asyncio")
async def test_phases_advance_one_step_at_a_time(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as session:
        roster = await create_roster(session)
        semester = await semester_repo.get_semester(session, roster.semester_id)

        with pytest.raises(PhaseTransitionError) as excinfo:
            await transition_phase(session, semester, "scheduling")
        assert excinfo.value.code == "phase_transition_invalid"

        with pytest.raises(PhaseTransitionError):
            await transition_phase(session, semester, "configuring")

        await transition_phase(session, semester, "collecting")
        await transition_phase(session, semester, "scheduling")
        await session.commit()
        assert semester.phase == "scheduling"

        with pytest.raises(PhaseTransitionError) as excinfo:
            await transition_phase(session, semester, "published")
        assert excinfo.value.code == "phase_preconditions_unmet"


@pytest.mark.anyio("asyncio")
async def test_publishing_schedule_completes_semester(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as session:
        roster = await create_roster(session)
        semester = await semester_repo.get_semester(session, roster.semester_id)
        await transition_phase(session, semester, "collecting")
        await transition_phase(session, semester, "scheduling")
        await session.commit()

        generated = await schedule_service.auto_schedule(session, roster.semester_id)
        await schedule_service.publish(session, generated.schedule.id)
        await session.refresh(semester)
        assert semester.phase == "published"

        result = await check_phase(session, semester)
        assert not result.can_advance


@pytest.mark.anyio("asyncio")
async def test_moving_back_keeps_schedule(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as session:
        roster = await create_roster(session)
        semester = await semester_repo.get_semester(session, roster.semester_id)
        await transition_phase(session, semester, "collecting")
        await transition_phase(session, semester, "scheduling")
        await session.commit()
        generated = await schedule_service.auto_schedule(session, roster.semester_id)

        await transition_phase(session, semester, "configuring")
        await session.commit()

        info = await schedule_service.get_schedule(session, roster.semester_id)
    assert semester.phase == "configuring"
    assert info is not None
    assert info.id == generated.schedule.id
    assert len(info.items) == 8
