from .directory import Department, Location, Member
from .rules import ScheduleRule
from .schedule import Schedule, ScheduleChangeLog, ScheduleItem, ScheduleMemberSnapshot
from .semester import DutyAssignment, Semester, TimeSlot
from .timetable import CourseOccurrence, UnavailableTime

__all__ = [
    "Department",
    "Member",
    "Location",
    "Semester",
    "TimeSlot",
    "DutyAssignment",
    "CourseOccurrence",
    "UnavailableTime",
    "ScheduleRule",
    "Schedule",
    "ScheduleItem",
    "ScheduleMemberSnapshot",
    "ScheduleChangeLog",
]
