from __future__ import annotations

import logging

from sqlalchemy import inspect

from campus_timetable.db.base import Base
from campus_timetable.db.session import engine
import campus_timetable.models  # noqa: F401

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "users": {"id", "email", "role", "department"},
    "venues": {"id", "name", "capacity", "is_available"},
    "classes": {"id", "name", "department"},
    "timetable_generations": {"id", "department", "term", "is_active"},
    "timetable_entries": {
        "id",
        "generation_id",
        "day_of_week",
        "start_time",
        "end_time",
        "week_start_date",
        "replacement_teacher_id",
    },
    "venue_bookings": {"id", "venue_id", "term", "day_of_week", "start_time", "end_time", "week_start_date"},
    "activity_logs": {"id", "actor_id", "department", "action", "target_type"},
}


def schema_report(connection) -> tuple[list[str], dict[str, list[str]]]:
    inspector = inspect(connection)
    table_names = set(inspector.get_table_names())
    missing_tables: list[str] = []
    missing_columns: dict[str, list[str]] = {}
    for table_name, columns in REQUIRED_COLUMNS.items():
        if table_name not in table_names:
            missing_tables.append(table_name)
            continue
        existing = {item["name"] for item in inspector.get_columns(table_name)}
        missing = sorted(columns - existing)
        if missing:
            missing_columns[table_name] = missing
    return missing_tables, missing_columns


def ensure_schema() -> None:
    """Create missing tables; report columns that need a migration."""
    Base.metadata.create_all(bind=engine)
    with engine.connect() as connection:
        _, missing_columns = schema_report(connection)
    for table_name, columns in missing_columns.items():
        logger.warning(
            "SCHEMA DRIFT | table=%s | missing_columns=%s | run `alembic upgrade head`",
            table_name,
            ", ".join(columns),
        )
