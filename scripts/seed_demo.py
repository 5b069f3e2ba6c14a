"""Seed a small duty roster for local development.

Run this after applying Alembic migrations:

    python -m alembic upgrade head
    python scripts/seed_demo.py
"""

from __future__ import annotations

import asyncio
from datetime import date, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from duty_scheduler.core.config import get_settings
from duty_scheduler.db.models.directory import Department, Location, Member
from duty_scheduler.db.models.semester import DutyAssignment, Semester, TimeSlot
from duty_scheduler.db.models.timetable import CourseOccurrence, UnavailableTime
from duty_scheduler.repositories import rules as rules_repo
from duty_scheduler.services import schedule_service

DEPARTMENTS = ("Front Desk", "Technical Support", "Publicity")

MEMBERS = (
    ("Lin Chen", "2023001", 0),
    ("Wang Yu", "2023002", 0),
    ("Zhao Min", "2023003", 1),
    ("Liu Yang", "2023004", 1),
    ("Sun Qi", "2023005", 2),
    ("Zhou Hao", "2023006", 2),
)

# (name, start, end); every weekday gets the same three windows.
SLOT_WINDOWS = (
    ("Morning", "08:00", "10:00"),
    ("Midday", "12:00", "14:00"),
    ("Afternoon", "16:00", "18:00"),
)


def _semester_bounds(today: date) -> tuple[date, date]:
    start = today - timedelta(days=today.weekday())
    return start, start + timedelta(weeks=16) - timedelta(days=3)


async def seed() -> None:
    settings = get_settings()
    engine = create_async_engine(settings.database_url, future=True)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    async with session_factory() as session:
        if await session.scalar(select(func.count(Semester.id))):
            print("Database already seeded; nothing to do.")
            await engine.dispose()
            return

        departments = [Department(name=name) for name in DEPARTMENTS]
        session.add_all(departments)
        await session.flush()

        members = [
            Member(name=name, student_id=student_id, department_id=departments[index].id)
            for name, student_id, index in MEMBERS
        ]
        session.add_all(members)
        session.add(Location(name="Student Center 101", address="Main campus", is_default=True))

        start, end = _semester_bounds(date.today())
        semester = Semester(
            name=f"{start.year} Autumn",
            start_date=start,
            end_date=end,
            first_week_type="odd",
            is_active=True,
            phase="scheduling",
        )
        session.add(semester)
        await session.flush()

        session.add_all(
            TimeSlot(
                name=f"{name} {day}",
                semester_id=semester.id,
                day_of_week=day,
                start_time=start_time,
                end_time=end_time,
            )
            for day in range(1, 6)
            for name, start_time, end_time in SLOT_WINDOWS
        )
        session.add_all(
            DutyAssignment(
                member_id=member.id,
                semester_id=semester.id,
                duty_required=True,
                timetable_status="submitted",
                timetable_submitted_at=func.now(),
            )
            for member in members
        )

        # A few recurring classes and one declared absence so the resolver has work to do.
        session.add_all(
            [
                CourseOccurrence(
                    member_id=members[0].id,
                    semester_id=semester.id,
                    course_name="Linear Algebra",
                    day_of_week=1,
                    start_time="08:00",
                    end_time="09:40",
                ),
                CourseOccurrence(
                    member_id=members[2].id,
                    semester_id=semester.id,
                    course_name="Operating Systems",
                    day_of_week=3,
                    start_time="12:30",
                    end_time="14:05",
                    week_type="odd",
                ),
                CourseOccurrence(
                    member_id=members[4].id,
                    semester_id=semester.id,
                    course_name="Lab Session",
                    day_of_week=5,
                    start_time="16:00",
                    end_time="17:30",
                    repeat_type="biweekly",
                ),
                UnavailableTime(
                    member_id=members[5].id,
                    semester_id=semester.id,
                    reason="Part-time job",
                    day_of_week=2,
                    start_time="15:00",
                    end_time="19:00",
                ),
            ]
        )
        await rules_repo.ensure_default_rules(session)
        await session.commit()

        response = await schedule_service.auto_schedule(session, semester.id, operator="seed")

    await engine.dispose()
    print(f"Seed data inserted; draft schedule filled {response.filled_slots}/{response.total_slots} cells.")


if __name__ == "__main__":
    asyncio.run(seed())
