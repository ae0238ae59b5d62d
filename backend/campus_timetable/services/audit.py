"""Activity trail for timetable and venue changes.

Records are staged on the caller's session and written by its commit, so a
rolled-back upload or assignment leaves no trail behind.
"""

from __future__ import annotations

import logging

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from campus_timetable.models.activity_log import ActivityLog
from campus_timetable.models.user import User

logger = logging.getLogger(__name__)

TARGET_TYPES: dict[str, str] = {
    "timetable.commit": "timetable_generation",
    "timetable.replacement": "timetable_entry",
    "venue.assign": "timetable_entry",
    "venue.create": "venue",
    "venue.update": "venue",
    "venue.delete": "venue",
}


def log_activity(
    db: Session,
    action: str,
    *,
    actor: User | None,
    target_id: str | None = None,
    department: str | None = None,
    **details,
) -> ActivityLog:
    try:
        target_type = TARGET_TYPES[action]
    except KeyError:
        raise ValueError(f"Unknown activity action: {action}") from None

    record = ActivityLog(
        actor_id=actor.id if actor is not None else None,
        department=department,
        action=action,
        target_type=target_type,
        target_id=target_id,
        details=details,
    )
    db.add(record)
    logger.debug("ACTIVITY | action=%s | department=%s | target=%s", action, department, target_id)
    return record


def recent_activity(
    db: Session,
    *,
    department: str | None = None,
    include_campus_wide: bool = True,
    action: str | None = None,
    limit: int = 200,
) -> list[ActivityLog]:
    """Newest first. With a department, campus-wide venue changes are included unless excluded."""
    statement = select(ActivityLog)
    if department is not None:
        if include_campus_wide:
            statement = statement.where(or_(ActivityLog.department == department, ActivityLog.department.is_(None)))
        else:
            statement = statement.where(ActivityLog.department == department)
    if action is not None:
        statement = statement.where(ActivityLog.action == action)
    statement = statement.order_by(ActivityLog.created_at.desc(), ActivityLog.id).limit(limit)
    return list(db.execute(statement).scalars())
