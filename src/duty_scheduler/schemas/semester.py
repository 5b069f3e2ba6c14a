from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from duty_scheduler.schemas.common import CLOCK_PATTERN, TimeRange

SemesterPhase = Literal["configuring", "collecting", "scheduling", "published"]


class SemesterBase(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    start_date: date
    end_date: date
    first_week_type: Literal["odd", "even"] = "odd"

    @model_validator(mode="after")
    def validate_dates(self) -> "SemesterBase":
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class SemesterCreate(SemesterBase):
    pass


class SemesterUpdate(BaseModel):
    name: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    first_week_type: Literal["odd", "even"] | None = None


class SemesterRead(SemesterBase):
    id: int
    is_active: bool
    phase: SemesterPhase
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PhaseCheckItem(BaseModel):
    code: str
    label: str
    passed: bool
    message: str | None = None


class PhaseCheckResponse(BaseModel):
    phase: SemesterPhase
    can_advance: bool
    checks: list[PhaseCheckItem]


class PhaseTransitionRequest(BaseModel):
    target_phase: SemesterPhase


class DutyMembersUpdate(BaseModel):
    member_ids: list[int]


class DutyAssignmentRead(BaseModel):
    member_id: int
    semester_id: int
    duty_required: bool
    timetable_status: Literal["not_submitted", "submitted"]
    timetable_submitted_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class TimeSlotCreate(TimeRange):
    name: str = Field(min_length=1, max_length=120)
    day_of_week: int = Field(ge=1, le=5)
    semester_id: int | None = None
    is_active: bool = True


class TimeSlotUpdate(BaseModel):
    name: str | None = None
    day_of_week: int | None = Field(default=None, ge=1, le=5)
    start_time: str | None = Field(default=None, pattern=CLOCK_PATTERN)
    end_time: str | None = Field(default=None, pattern=CLOCK_PATTERN)
    is_active: bool | None = None


class TimeSlotRead(BaseModel):
    id: int
    name: str
    day_of_week: int
    start_time: str
    end_time: str
    semester_id: int | None = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)
