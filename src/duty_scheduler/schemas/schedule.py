from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from duty_scheduler.schemas.directory import LocationBrief, MemberBrief


class AutoScheduleRequest(BaseModel):
    semester_id: int | None = None
    strategy: Literal["heuristic", "optimized"] = "heuristic"


class TimeSlotBrief(BaseModel):
    id: int
    name: str
    day_of_week: int
    start_time: str
    end_time: str

    model_config = ConfigDict(from_attributes=True)


class ScheduleItemRead(BaseModel):
    id: int
    schedule_id: int
    week_number: int
    time_slot_id: int
    time_slot: TimeSlotBrief
    member_id: int | None = None
    member: MemberBrief | None = None
    location_id: int | None = None
    location: LocationBrief | None = None
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ScheduleSummary(BaseModel):
    id: int
    semester_id: int
    status: Literal["draft", "published"]
    strategy: str
    total_slots: int
    filled_slots: int
    warnings: list[str] = Field(default_factory=list)
    generated_at: datetime | None = None
    generated_by: str | None = None
    published_at: datetime | None = None
    published_by: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ScheduleInfo(ScheduleSummary):
    items: list[ScheduleItemRead] = Field(default_factory=list)


class SchedulingDiagnostic(BaseModel):
    code: str
    message: str
    severity: Literal["info", "warning", "critical"] = "warning"
    week_number: int | None = None
    time_slot_id: int | None = None
    member_id: int | None = None
    meta: dict[str, Any] = Field(default_factory=dict)


class AutoScheduleResponse(BaseModel):
    schedule: ScheduleInfo
    total_slots: int
    filled_slots: int
    warnings: list[str] = Field(default_factory=list)
    diagnostics: list[SchedulingDiagnostic] = Field(default_factory=list)
    duration_ms: int | None = None


class UpdateItemRequest(BaseModel):
    member_id: int | None = None
    location_id: int | None = None


class UpdatePublishedItemRequest(BaseModel):
    member_id: int
    location_id: int | None = None
    # Blank reasons are rejected by the service with a stable error code.
    reason: str = Field(default="", max_length=500)

    @field_validator("reason")
    @classmethod
    def strip_reason(cls, value: str) -> str:
        return value.strip()


class ValidateCandidateRequest(BaseModel):
    member_id: int


class ValidateCandidateResponse(BaseModel):
    valid: bool
    conflicts: list[str] = Field(default_factory=list)


class CandidateInfo(BaseModel):
    user_id: int
    name: str
    student_id: str
    department_id: int | None = None
    department: str | None = None
    available: bool
    status: Literal["available", "unavailable", "conflict"]
    conflicts: list[str] = Field(default_factory=list)
    assigned_count: int = 0


class ChangeLogRead(BaseModel):
    id: int
    schedule_id: int
    schedule_item_id: int
    original_member_id: int | None = None
    original_member_name: str | None = None
    new_member_id: int | None = None
    new_member_name: str | None = None
    original_location_id: int | None = None
    new_location_id: int | None = None
    change_type: Literal["manual_adjust", "published_modify"]
    reason: str
    operator: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ChangeLogPage(BaseModel):
    items: list[ChangeLogRead]
    total: int
    page: int
    page_size: int


class ScopeUser(BaseModel):
    user_id: int
    name: str


class ScopeCheckResponse(BaseModel):
    changed: bool
    added_users: list[ScopeUser] = Field(default_factory=list)
    removed_users: list[ScopeUser] = Field(default_factory=list)


class PrecheckItem(BaseModel):
    code: str
    passed: bool
    message: str


class PrecheckResponse(BaseModel):
    semester_id: int
    ready: bool
    checks: list[PrecheckItem]
