from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from duty_scheduler.schemas.common import TimeRange


class RecurringEntryBase(TimeRange):
    day_of_week: int = Field(ge=1, le=7)
    week_type: Literal["all", "odd", "even"] = "all"
    repeat_type: Literal["weekly", "biweekly", "once"] = "weekly"
    specific_date: date | None = None

    @model_validator(mode="after")
    def validate_specific_date(self) -> "RecurringEntryBase":
        if self.repeat_type == "once" and self.specific_date is None:
            raise ValueError("specific_date is required for one-off entries")
        return self


class CourseOccurrenceCreate(RecurringEntryBase):
    member_id: int
    semester_id: int
    course_name: str = Field(min_length=1, max_length=200)
    source: Literal["ics", "manual"] = "manual"


class CourseOccurrenceRead(CourseOccurrenceCreate):
    id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UnavailableTimeCreate(RecurringEntryBase):
    member_id: int
    semester_id: int
    reason: str | None = Field(default=None, max_length=255)


class UnavailableTimeRead(UnavailableTimeCreate):
    id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TimetableSubmitRequest(BaseModel):
    member_id: int
    semester_id: int
