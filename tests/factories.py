from dataclasses import dataclass, field
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from duty_scheduler.repositories import directory as directory_repo
from duty_scheduler.repositories import semester as semester_repo
from duty_scheduler.repositories import timetable as timetable_repo
from duty_scheduler.schemas.directory import DepartmentCreate, LocationCreate, MemberCreate
from duty_scheduler.schemas.semester import SemesterCreate, TimeSlotCreate
from duty_scheduler.schemas.timetable import CourseOccurrenceCreate, UnavailableTimeCreate

# Two full teaching weeks: Monday 2 September to Friday 13 September 2024.
SEMESTER_START = date(2024, 9, 2)
SEMESTER_END = date(2024, 9, 13)


def build_semester_create(**overrides) -> SemesterCreate:
    data = {
        "name": "2024 Autumn",
        "start_date": SEMESTER_START,
        "end_date": SEMESTER_END,
        "first_week_type": "odd",
    }
    data.update(overrides)
    return SemesterCreate(**data)


def build_time_slot_create(**overrides) -> TimeSlotCreate:
    data = {"name": "Morning", "day_of_week": 1, "start_time": "08:00", "end_time": "10:00"}
    data.update(overrides)
    return TimeSlotCreate(**data)


def build_department_create(**overrides) -> DepartmentCreate:
    data = {"name": "Front Desk"}
    data.update(overrides)
    return DepartmentCreate(**data)


def build_member_create(**overrides) -> MemberCreate:
    data = {"name": "Factory Member", "student_id": "2024000"}
    data.update(overrides)
    return MemberCreate(**data)


def build_location_create(**overrides) -> LocationCreate:
    data = {"name": "Student Center 101", "is_default": True}
    data.update(overrides)
    return LocationCreate(**data)


def build_course_create(**overrides) -> CourseOccurrenceCreate:
    data = {
        "member_id": 1,
        "semester_id": 1,
        "course_name": "Linear Algebra",
        "day_of_week": 1,
        "start_time": "08:00",
        "end_time": "18:00",
    }
    data.update(overrides)
    return CourseOccurrenceCreate(**data)


def build_unavailable_time_create(**overrides) -> UnavailableTimeCreate:
    data = {
        "member_id": 1,
        "semester_id": 1,
        "day_of_week": 3,
        "start_time": "08:00",
        "end_time": "18:00",
        "reason": "Part-time job",
    }
    data.update(overrides)
    return UnavailableTimeCreate(**data)


# (day_of_week, start, end): eight cells over the two-week semester.
ROSTER_SLOTS = (
    (1, "08:00", "10:00"),
    (1, "14:00", "16:00"),
    (3, "10:00", "12:00"),
    (5, "14:00", "16:00"),
)


@dataclass
class Roster:
    semester_id: int
    location_id: int
    member_ids: list[int]
    slot_ids: list[int]
    department_ids: list[int] = field(default_factory=list)


async def create_roster(
    session: AsyncSession,
    *,
    member_count: int = 3,
    submitted: bool = True,
    busy_monday_member: bool = True,
) -> Roster:
    """Seed an active semester ready for auto-scheduling and commit it.

    The first member attends a course covering every Monday slot.
    """
    semester = await semester_repo.create_semester(session, build_semester_create())
    await semester_repo.activate_semester(session, semester)
    location = await directory_repo.create_location(session, build_location_create())
    departments = [
        await directory_repo.create_department(session, build_department_create(name=f"Department {index}"))
        for index in range(1, member_count + 1)
    ]
    members = [
        await directory_repo.create_member(
            session,
            build_member_create(
                name=f"Member {index}",
                student_id=f"20240{index:02d}",
                department_id=departments[index - 1].id,
            ),
        )
        for index in range(1, member_count + 1)
    ]
    slots = [
        await semester_repo.create_time_slot(
            session,
            build_time_slot_create(
                name=f"Slot {index}",
                semester_id=semester.id,
                day_of_week=day,
                start_time=start,
                end_time=end,
            ),
        )
        for index, (day, start, end) in enumerate(ROSTER_SLOTS, start=1)
    ]
    await semester_repo.set_duty_members(session, semester.id, [member.id for member in members])
    if busy_monday_member:
        await timetable_repo.create_course(
            session, build_course_create(member_id=members[0].id, semester_id=semester.id)
        )
    if submitted:
        for assignment in await semester_repo.list_assignments(session, semester.id, duty_required=True):
            await semester_repo.mark_timetable_submitted(session, assignment)
    await session.commit()
    return Roster(
        semester_id=semester.id,
        location_id=location.id,
        member_ids=[member.id for member in members],
        slot_ids=[slot.id for slot in slots],
        department_ids=[department.id for department in departments],
    )
