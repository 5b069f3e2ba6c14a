from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from duty_scheduler.db.base import Base

if TYPE_CHECKING:
    from duty_scheduler.db.models.directory import Location, Member
    from duty_scheduler.db.models.semester import TimeSlot


class Schedule(Base):
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    # One schedule per semester.
    semester_id: Mapped[int] = mapped_column(
        ForeignKey("semester.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    status: Mapped[str] = mapped_column(String(16), default="draft", nullable=False)
    strategy: Mapped[str] = mapped_column(String(16), default="heuristic", nullable=False)
    total_slots: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    filled_slots: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    warnings: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    generated_at: Mapped[datetime | None] = mapped_column(DateTime)
    generated_by: Mapped[str | None] = mapped_column(String(120))
    published_at: Mapped[datetime | None] = mapped_column(DateTime)
    published_by: Mapped[str | None] = mapped_column(String(120))
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}


class ScheduleItem(Base):
    __table_args__ = (
        UniqueConstraint("schedule_id", "week_number", "time_slot_id", name="uq_scheduleitem_cell"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    schedule_id: Mapped[int] = mapped_column(ForeignKey("schedule.id", ondelete="CASCADE"), index=True)
    week_number: Mapped[int] = mapped_column(Integer, nullable=False)
    time_slot_id: Mapped[int] = mapped_column(ForeignKey("timeslot.id", ondelete="CASCADE"), nullable=False)
    member_id: Mapped[int | None] = mapped_column(ForeignKey("member.id", ondelete="SET NULL"), index=True)
    location_id: Mapped[int | None] = mapped_column(ForeignKey("location.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    time_slot: Mapped["TimeSlot"] = relationship(lazy="joined")
    member: Mapped["Member"] = relationship(lazy="joined")
    location: Mapped["Location"] = relationship(lazy="joined")


class ScheduleMemberSnapshot(Base):
    """Eligible duty members captured when the schedule was generated."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    schedule_id: Mapped[int] = mapped_column(ForeignKey("schedule.id", ondelete="CASCADE"), index=True)
    member_id: Mapped[int] = mapped_column(ForeignKey("member.id", ondelete="CASCADE"), nullable=False)
    department_id: Mapped[int | None] = mapped_column(Integer)
    snapshot_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), nullable=False)

    member: Mapped["Member"] = relationship(lazy="joined")


class ScheduleChangeLog(Base):
    """Append-only audit entry for a post-publish change to a schedule item."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    schedule_id: Mapped[int] = mapped_column(ForeignKey("schedule.id", ondelete="CASCADE"), index=True)
    # Plain column: the log outlives reassignment and removal of the item.
    schedule_item_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    original_member_id: Mapped[int | None] = mapped_column(Integer)
    new_member_id: Mapped[int | None] = mapped_column(Integer)
    original_location_id: Mapped[int | None] = mapped_column(Integer)
    new_location_id: Mapped[int | None] = mapped_column(Integer)
    change_type: Mapped[str] = mapped_column(String(32), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    operator: Mapped[str] = mapped_column(String(120), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), nullable=False)
