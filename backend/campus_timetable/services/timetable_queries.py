from __future__ import annotations

from datetime import date

from sqlalchemy import Select, or_, select
from sqlalchemy.orm import Session

from campus_timetable.core.exceptions import ResourceNotFoundError
from campus_timetable.models.timetable import TimetableEntry, TimetableGeneration
from campus_timetable.schemas.timetable import DAY_ORDER
from campus_timetable.services.week_ranges import week_monday


def active_entries_statement() -> Select:
    return (
        select(TimetableEntry)
        .join(TimetableGeneration, TimetableGeneration.id == TimetableEntry.generation_id)
        .where(TimetableGeneration.is_active.is_(True))
    )


def load_active_entry(db: Session, entry_id: str) -> TimetableEntry:
    entry = db.execute(active_entries_statement().where(TimetableEntry.id == entry_id)).scalar_one_or_none()
    if entry is None:
        raise ResourceNotFoundError("Timetable entry", entry_id)
    return entry


def list_active_entries(
    db: Session,
    *,
    department: str | None = None,
    term: str | None = None,
    week: date | None = None,
    week_index: int | None = None,
    day_of_week: str | None = None,
    teacher_id: str | None = None,
    class_id: str | None = None,
) -> list[TimetableEntry]:
    """Entries of active generations, optionally narrowed down.

    `week` may be any day of the wanted week. `teacher_id` matches both the
    scheduled teacher and an assigned replacement.
    """
    statement = active_entries_statement()
    if department is not None:
        statement = statement.where(TimetableEntry.department == department)
    if term is not None:
        statement = statement.where(TimetableEntry.term == term)
    if week is not None:
        statement = statement.where(TimetableEntry.week_start_date == week_monday(week))
    if week_index is not None:
        statement = statement.where(TimetableEntry.week_index == week_index)
    if day_of_week is not None:
        statement = statement.where(TimetableEntry.day_of_week == day_of_week)
    if teacher_id is not None:
        statement = statement.where(
            or_(TimetableEntry.teacher_id == teacher_id, TimetableEntry.replacement_teacher_id == teacher_id)
        )
    if class_id is not None:
        statement = statement.where(TimetableEntry.class_id == class_id)
    entries = list(db.execute(statement).scalars())
    entries.sort(
        key=lambda entry: (
            entry.week_start_date,
            DAY_ORDER.index(entry.day_of_week),
            entry.start_time,
            entry.subject,
        )
    )
    return entries


def current_week_index(db: Session, department: str, today: date) -> int:
    """Week number of the department's active timetable that contains `today`, else 1."""
    statement = (
        select(TimetableEntry.week_index)
        .join(TimetableGeneration, TimetableGeneration.id == TimetableEntry.generation_id)
        .where(
            TimetableGeneration.is_active.is_(True),
            TimetableEntry.department == department,
            TimetableEntry.week_start_date <= today,
            TimetableEntry.week_end_date >= today,
        )
        .limit(1)
    )
    week_index = db.execute(statement).scalar_one_or_none()
    return week_index if week_index is not None else 1
