"""create timetable schema

Revision ID: 20261018_0001
Revises: None
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


user_role_enum = sa.Enum("admin", "hod", "teacher", "student", name="user_role")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("role", user_role_enum, nullable=False),
        sa.Column("department", sa.String(length=200), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_department", "users", ["department"])

    op.create_table(
        "venues",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("location", sa.String(length=200), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_venues_name", "venues", ["name"], unique=True)

    op.create_table(
        "classes",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("department", sa.String(length=200), nullable=False),
        sa.Column("teacher_id", sa.String(length=36), nullable=True),
        sa.Column("credits_required", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("enrolled_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("weekly_pattern", sa.JSON(), nullable=False),
        sa.Column("auto_generated", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("department", "name", name="uq_classes_department_name"),
    )
    op.create_index("ix_classes_department", "classes", ["department"])

    op.create_table(
        "timetable_generations",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("department", sa.String(length=200), nullable=False),
        sa.Column("term", sa.String(length=100), nullable=False),
        sa.Column("term_start_date", sa.Date(), nullable=False),
        sa.Column("term_end_date", sa.Date(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("entry_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("skipped_error_rows", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_by_id", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        "ix_timetable_generations_scope",
        "timetable_generations",
        ["department", "term", "is_active"],
    )

    op.create_table(
        "timetable_entries",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column(
            "generation_id",
            sa.String(length=36),
            sa.ForeignKey("timetable_generations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("department", sa.String(length=200), nullable=False),
        sa.Column("term", sa.String(length=100), nullable=False),
        sa.Column("class_id", sa.String(length=36), nullable=True),
        sa.Column("subject", sa.String(length=200), nullable=False),
        sa.Column("teacher_id", sa.String(length=36), nullable=True),
        sa.Column("day_of_week", sa.String(length=20), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("venue_id", sa.String(length=36), nullable=True),
        sa.Column("week_index", sa.Integer(), nullable=False),
        sa.Column("week_start_date", sa.Date(), nullable=False),
        sa.Column("week_end_date", sa.Date(), nullable=False),
        sa.Column("source_sheet", sa.String(length=100), nullable=False),
        sa.Column("source_row", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_timetable_entries_generation_id", "timetable_entries", ["generation_id"])
    op.create_index("ix_timetable_entries_class_id", "timetable_entries", ["class_id"])
    op.create_index("ix_timetable_entries_teacher_id", "timetable_entries", ["teacher_id"])
    op.create_index("ix_timetable_entries_week", "timetable_entries", ["department", "term", "week_index"])
    op.create_index("ix_timetable_entries_slot", "timetable_entries", ["day_of_week", "week_start_date"])

    op.create_table(
        "venue_bookings",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("venue_id", sa.String(length=36), sa.ForeignKey("venues.id", ondelete="CASCADE"), nullable=False),
        sa.Column("term", sa.String(length=100), nullable=False),
        sa.Column("day_of_week", sa.String(length=20), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("week_start_date", sa.Date(), nullable=True),
        sa.Column(
            "entry_id",
            sa.String(length=36),
            sa.ForeignKey("timetable_entries.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_venue_bookings_slot", "venue_bookings", ["venue_id", "term", "day_of_week"])
    op.create_index("ix_venue_bookings_entry_id", "venue_bookings", ["entry_id"])

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=True),
        sa.Column("entity_id", sa.String(length=100), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_activity_logs_action", "activity_logs", ["action"])


def downgrade() -> None:
    op.drop_index("ix_activity_logs_action", table_name="activity_logs")
    op.drop_table("activity_logs")
    op.drop_index("ix_venue_bookings_entry_id", table_name="venue_bookings")
    op.drop_index("ix_venue_bookings_slot", table_name="venue_bookings")
    op.drop_table("venue_bookings")
    op.drop_index("ix_timetable_entries_slot", table_name="timetable_entries")
    op.drop_index("ix_timetable_entries_week", table_name="timetable_entries")
    op.drop_index("ix_timetable_entries_teacher_id", table_name="timetable_entries")
    op.drop_index("ix_timetable_entries_class_id", table_name="timetable_entries")
    op.drop_index("ix_timetable_entries_generation_id", table_name="timetable_entries")
    op.drop_table("timetable_entries")
    op.drop_index("ix_timetable_generations_scope", table_name="timetable_generations")
    op.drop_table("timetable_generations")
    op.drop_index("ix_classes_department", table_name="classes")
    op.drop_table("classes")
    op.drop_index("ix_venues_name", table_name="venues")
    op.drop_table("venues")
    op.drop_index("ix_users_department", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
    user_role_enum.drop(op.get_bind(), checkfirst=True)
