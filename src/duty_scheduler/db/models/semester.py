from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from duty_scheduler.db.base import Base

if TYPE_CHECKING:
    from duty_scheduler.db.models.directory import Member


class Semester(Base):
    __table_args__ = (
        # At most one row may carry is_active = true.
        Index(
            "uq_semester_single_active",
            "is_active",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    first_week_type: Mapped[str] = mapped_column(String(8), default="odd", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    phase: Mapped[str] = mapped_column(String(16), default="configuring", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )


class TimeSlot(Base):
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    # NULL scopes the slot to every semester.
    semester_id: Mapped[int | None] = mapped_column(ForeignKey("semester.id", ondelete="CASCADE"), index=True)
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)  # HH:MM
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)  # HH:MM
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class DutyAssignment(Base):
    """Per-semester duty flag and timetable submission state of a member."""

    __table_args__ = (UniqueConstraint("member_id", "semester_id", name="uq_dutyassignment_member_semester"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    member_id: Mapped[int] = mapped_column(ForeignKey("member.id", ondelete="CASCADE"), index=True)
    semester_id: Mapped[int] = mapped_column(ForeignKey("semester.id", ondelete="CASCADE"), index=True)
    duty_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    timetable_status: Mapped[str] = mapped_column(String(16), default="not_submitted", nullable=False)
    timetable_submitted_at: Mapped[datetime | None] = mapped_column(DateTime)

    member: Mapped["Member"] = relationship(lazy="joined")
