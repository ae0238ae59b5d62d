from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from campus_timetable.core.exceptions import ResourceNotFoundError, ValidationError
from campus_timetable.models.timetable import TimetableEntry
from campus_timetable.models.user import User
from campus_timetable.services.audit import log_activity
from campus_timetable.services.directory import TEACHING_ROLES
from campus_timetable.services.timetable_commit import department_scope_key
from campus_timetable.services.timetable_queries import load_active_entry
from campus_timetable.services.venue_conflicts import department_locks

logger = logging.getLogger(__name__)


def assign_replacement(
    db: Session,
    entry_id: str,
    *,
    teacher_id: str | None = None,
    teacher_name: str | None = None,
    reason: str | None = None,
    user: User | None = None,
) -> TimetableEntry:
    """Cover one dated entry with another teacher.

    A known teacher account wins over a free-text name; an unlisted cover
    (visiting lecturer) is kept by name only. The scheduled teacher is left
    untouched so the original plan stays readable.
    """
    entry = load_active_entry(db, entry_id)

    with department_locks.hold([department_scope_key(entry.department, entry.term)]):
        # An upload may have replaced the entry while we waited.
        entry = load_active_entry(db, entry_id)

        replacement: User | None = None
        if teacher_id is not None:
            replacement = db.get(User, teacher_id)
            if replacement is None or replacement.role not in TEACHING_ROLES:
                raise ResourceNotFoundError("Teacher", teacher_id)
            if replacement.id == entry.teacher_id:
                raise ValidationError(
                    "The replacement must differ from the scheduled teacher.",
                    details={"timetableId": entry.id, "teacherId": teacher_id},
                )

        entry.replacement_teacher_id = replacement.id if replacement is not None else None
        entry.replacement_teacher_name = replacement.name if replacement is not None else teacher_name
        entry.replacement_reason = reason
        entry.replacement_assigned_by_id = user.id if user is not None else None
        entry.replacement_assigned_at = datetime.now(timezone.utc)

        log_activity(
            db,
            "timetable.replacement",
            actor=user,
            target_id=entry.id,
            department=entry.department,
            replacement_teacher_id=entry.replacement_teacher_id,
            replacement_teacher_name=entry.replacement_teacher_name,
            reason=reason,
        )
        db.commit()

    logger.info(
        "REPLACEMENT ASSIGNED | entry_id=%s | department=%s | teacher=%s",
        entry_id,
        entry.department,
        entry.replacement_teacher_id or entry.replacement_teacher_name,
    )
    db.refresh(entry)
    return entry
