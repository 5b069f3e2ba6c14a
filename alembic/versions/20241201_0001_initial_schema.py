"""Initial schema for the duty roster domain.

Revision ID: 20241201_0001
Revises:
Create Date: 2024-12-01 09:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20241201_0001"
down_revision = None
branch_labels = None
depends_on = None


def _recurrence_columns() -> list[sa.Column]:
    return [
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("week_type", sa.String(length=8), nullable=False, server_default=sa.text("'all'")),
        sa.Column("repeat_type", sa.String(length=16), nullable=False, server_default=sa.text("'weekly'")),
        sa.Column("specific_date", sa.Date(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "department",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_department_id", "department", ["id"])

    op.create_table(
        "member",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("student_id", sa.String(length=32), nullable=False, unique=True),
        sa.Column(
            "department_id",
            sa.Integer(),
            sa.ForeignKey("department.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("role", sa.String(length=32), nullable=False, server_default=sa.text("'member'")),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_member_id", "member", ["id"])
    op.create_index("ix_member_department_id", "member", ["department_id"])

    op.create_table(
        "location",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_location_id", "location", ["id"])

    op.create_table(
        "semester",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("first_week_type", sa.String(length=8), nullable=False, server_default=sa.text("'odd'")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("phase", sa.String(length=16), nullable=False, server_default=sa.text("'configuring'")),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_semester_id", "semester", ["id"])
    op.create_index(
        "uq_semester_single_active",
        "semester",
        ["is_active"],
        unique=True,
        postgresql_where=sa.text("is_active"),
        sqlite_where=sa.text("is_active = 1"),
    )

    op.create_table(
        "timeslot",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column(
            "semester_id",
            sa.Integer(),
            sa.ForeignKey("semester.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_timeslot_id", "timeslot", ["id"])
    op.create_index("ix_timeslot_semester_id", "timeslot", ["semester_id"])

    op.create_table(
        "dutyassignment",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("member.id", ondelete="CASCADE"), nullable=False),
        sa.Column("semester_id", sa.Integer(), sa.ForeignKey("semester.id", ondelete="CASCADE"), nullable=False),
        sa.Column("duty_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "timetable_status",
            sa.String(length=16),
            nullable=False,
            server_default=sa.text("'not_submitted'"),
        ),
        sa.Column("timetable_submitted_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("member_id", "semester_id", name="uq_dutyassignment_member_semester"),
    )
    op.create_index("ix_dutyassignment_member_id", "dutyassignment", ["member_id"])
    op.create_index("ix_dutyassignment_semester_id", "dutyassignment", ["semester_id"])

    op.create_table(
        "courseoccurrence",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("member.id", ondelete="CASCADE"), nullable=False),
        sa.Column("semester_id", sa.Integer(), sa.ForeignKey("semester.id", ondelete="CASCADE"), nullable=False),
        sa.Column("course_name", sa.String(length=200), nullable=False),
        sa.Column("source", sa.String(length=16), nullable=False, server_default=sa.text("'manual'")),
        *_recurrence_columns(),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_courseoccurrence_id", "courseoccurrence", ["id"])
    op.create_index("ix_courseoccurrence_member_id", "courseoccurrence", ["member_id"])
    op.create_index("ix_courseoccurrence_semester_id", "courseoccurrence", ["semester_id"])

    op.create_table(
        "unavailabletime",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("member.id", ondelete="CASCADE"), nullable=False),
        sa.Column("semester_id", sa.Integer(), sa.ForeignKey("semester.id", ondelete="CASCADE"), nullable=False),
        sa.Column("reason", sa.String(length=255), nullable=True),
        *_recurrence_columns(),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_unavailabletime_id", "unavailabletime", ["id"])
    op.create_index("ix_unavailabletime_member_id", "unavailabletime", ["member_id"])
    op.create_index("ix_unavailabletime_semester_id", "unavailabletime", ["semester_id"])

    op.create_table(
        "schedulerule",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("rule_code", sa.String(length=8), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_configurable", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_schedulerule_rule_code", "schedulerule", ["rule_code"], unique=True)

    op.create_table(
        "schedule",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "semester_id",
            sa.Integer(),
            sa.ForeignKey("semester.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("status", sa.String(length=16), nullable=False, server_default=sa.text("'draft'")),
        sa.Column("strategy", sa.String(length=16), nullable=False, server_default=sa.text("'heuristic'")),
        sa.Column("total_slots", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("filled_slots", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("warnings", sa.JSON(), nullable=False),
        sa.Column("generated_at", sa.DateTime(), nullable=True),
        sa.Column("generated_by", sa.String(length=120), nullable=True),
        sa.Column("published_at", sa.DateTime(), nullable=True),
        sa.Column("published_by", sa.String(length=120), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("version", sa.Integer(), nullable=False),
    )
    op.create_index("ix_schedule_id", "schedule", ["id"])

    op.create_table(
        "scheduleitem",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("schedule_id", sa.Integer(), sa.ForeignKey("schedule.id", ondelete="CASCADE"), nullable=False),
        sa.Column("week_number", sa.Integer(), nullable=False),
        sa.Column("time_slot_id", sa.Integer(), sa.ForeignKey("timeslot.id", ondelete="CASCADE"), nullable=False),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("member.id", ondelete="SET NULL"), nullable=True),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("location.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.UniqueConstraint("schedule_id", "week_number", "time_slot_id", name="uq_scheduleitem_cell"),
    )
    op.create_index("ix_scheduleitem_id", "scheduleitem", ["id"])
    op.create_index("ix_scheduleitem_schedule_id", "scheduleitem", ["schedule_id"])
    op.create_index("ix_scheduleitem_member_id", "scheduleitem", ["member_id"])

    op.create_table(
        "schedulemembersnapshot",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("schedule_id", sa.Integer(), sa.ForeignKey("schedule.id", ondelete="CASCADE"), nullable=False),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("member.id", ondelete="CASCADE"), nullable=False),
        sa.Column("department_id", sa.Integer(), nullable=True),
        sa.Column("snapshot_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_schedulemembersnapshot_schedule_id", "schedulemembersnapshot", ["schedule_id"])

    op.create_table(
        "schedulechangelog",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("schedule_id", sa.Integer(), sa.ForeignKey("schedule.id", ondelete="CASCADE"), nullable=False),
        sa.Column("schedule_item_id", sa.Integer(), nullable=False),
        sa.Column("original_member_id", sa.Integer(), nullable=True),
        sa.Column("new_member_id", sa.Integer(), nullable=True),
        sa.Column("original_location_id", sa.Integer(), nullable=True),
        sa.Column("new_location_id", sa.Integer(), nullable=True),
        sa.Column("change_type", sa.String(length=32), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("operator", sa.String(length=120), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_schedulechangelog_id", "schedulechangelog", ["id"])
    op.create_index("ix_schedulechangelog_schedule_id", "schedulechangelog", ["schedule_id"])
    op.create_index("ix_schedulechangelog_schedule_item_id", "schedulechangelog", ["schedule_item_id"])


def downgrade() -> None:
    op.drop_table("schedulechangelog")
    op.drop_table("schedulemembersnapshot")
    op.drop_table("scheduleitem")
    op.drop_table("schedule")
    op.drop_table("schedulerule")
    op.drop_table("unavailabletime")
    op.drop_table("courseoccurrence")
    op.drop_table("dutyassignment")
    op.drop_table("timeslot")
    op.drop_index("uq_semester_single_active", table_name="semester")
    op.drop_table("semester")
    op.drop_table("location")
    op.drop_table("member")
    op.drop_table("department")
