"""add replacement teachers to entries and department scope to activity logs

Revision ID: 20261018_0002
Revises: 20261018_0001
Create Date: 2026-10-18 00:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "20261018_0002"
down_revision = "20261018_0001"
branch_labels = None
depends_on = None


def _replacement_columns() -> list[sa.Column]:
    return [
        sa.Column("replacement_teacher_id", sa.String(length=36), nullable=True),
        sa.Column("replacement_teacher_name", sa.String(length=200), nullable=True),
        sa.Column("replacement_reason", sa.String(length=500), nullable=True),
        sa.Column("replacement_assigned_by_id", sa.String(length=36), nullable=True),
        sa.Column("replacement_assigned_at", sa.DateTime(timezone=True), nullable=True),
    ]


def _column_exists(inspector, table_name: str, column_name: str) -> bool:
    return column_name in {item["name"] for item in inspector.get_columns(table_name)}


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    for column in _replacement_columns():
        if not _column_exists(inspector, "timetable_entries", column.name):
            op.add_column("timetable_entries", column)
    op.create_index(
        "ix_timetable_entries_replacement_teacher_id",
        "timetable_entries",
        ["replacement_teacher_id"],
    )

    if _column_exists(inspector, "activity_logs", "user_id"):
        op.execute("UPDATE activity_logs SET entity_type = 'unknown' WHERE entity_type IS NULL")
        op.drop_index("ix_activity_logs_action", table_name="activity_logs")
        with op.batch_alter_table("activity_logs") as batch:
            batch.alter_column("user_id", new_column_name="actor_id", existing_type=sa.String(length=36))
            batch.alter_column(
                "entity_type",
                new_column_name="target_type",
                existing_type=sa.String(length=100),
                type_=sa.String(length=50),
                nullable=False,
            )
            batch.alter_column(
                "entity_id",
                new_column_name="target_id",
                existing_type=sa.String(length=100),
                type_=sa.String(length=36),
            )
            batch.alter_column("action", existing_type=sa.String(length=100), type_=sa.String(length=50))
            batch.add_column(sa.Column("department", sa.String(length=200), nullable=True))
        op.create_index("ix_activity_logs_action", "activity_logs", ["action"])
        op.create_index("ix_activity_logs_department_created", "activity_logs", ["department", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_activity_logs_department_created", table_name="activity_logs")
    op.drop_index("ix_activity_logs_action", table_name="activity_logs")
    with op.batch_alter_table("activity_logs") as batch:
        batch.drop_column("department")
        batch.alter_column("action", existing_type=sa.String(length=50), type_=sa.String(length=100))
        batch.alter_column(
            "target_id",
            new_column_name="entity_id",
            existing_type=sa.String(length=36),
            type_=sa.String(length=100),
        )
        batch.alter_column(
            "target_type",
            new_column_name="entity_type",
            existing_type=sa.String(length=50),
            type_=sa.String(length=100),
            nullable=True,
        )
        batch.alter_column("actor_id", new_column_name="user_id", existing_type=sa.String(length=36))
    op.create_index("ix_activity_logs_action", "activity_logs", ["action"])

    op.drop_index("ix_timetable_entries_replacement_teacher_id", table_name="timetable_entries")
    with op.batch_alter_table("timetable_entries") as batch:
        for column in reversed(_replacement_columns()):
            batch.drop_column(column.name)
