from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from campus_timetable.core.exceptions import ResourceNotFoundError, VenueConflictError
from campus_timetable.models.school_class import SchoolClass
from campus_timetable.models.timetable import TimetableEntry
from campus_timetable.models.user import User
from campus_timetable.models.venue import Venue
from campus_timetable.services.audit import log_activity
from campus_timetable.services.directory import SqlVenueRegistry
from campus_timetable.services.timetable_commit import department_scope_key
from campus_timetable.services.timetable_queries import load_active_entry
from campus_timetable.services.venue_conflicts import (
    BookingRequest,
    SqlBookingStore,
    VenueConflictResolver,
    WeekScope,
    department_locks,
)

logger = logging.getLogger(__name__)


def _resolver(db: Session) -> VenueConflictResolver:
    return VenueConflictResolver(SqlBookingStore(db), SqlVenueRegistry(db))


def class_size(db: Session, class_id: str | None) -> int:
    if not class_id:
        return 0
    school_class = db.get(SchoolClass, class_id)
    return school_class.enrolled_count if school_class is not None else 0


def query_available_venues(
    db: Session,
    day_of_week: str,
    start_time: str,
    end_time: str,
    scope: WeekScope,
    *,
    class_id: str | None = None,
) -> list[Venue]:
    venue_ids = _resolver(db).available_venues(
        day_of_week,
        start_time,
        end_time,
        scope,
        min_capacity=class_size(db, class_id),
    )
    if not venue_ids:
        return []
    venues = {venue.id: venue for venue in db.execute(select(Venue).where(Venue.id.in_(venue_ids))).scalars()}
    return [venues[venue_id] for venue_id in venue_ids if venue_id in venues]


def assign_venue(db: Session, entry_id: str, venue_id: str, *, user: User | None = None) -> TimetableEntry:
    """Bind `venue_id` to one dated timetable entry.

    The overlap check happens inside the reservation, under the venue lock.
    A clash raises VenueConflictError carrying alternative free venues.
    """
    entry = load_active_entry(db, entry_id)
    venue = db.get(Venue, venue_id)
    if venue is None:
        raise ResourceNotFoundError("Venue", venue_id)

    request = BookingRequest(
        venue_id=venue.id,
        term=entry.term,
        day_of_week=entry.day_of_week,
        start_time=entry.start_time,
        end_time=entry.end_time,
        week_start_date=entry.week_start_date,
        entry_id=entry.id,
    )
    previous_venue_id = entry.venue_id

    with department_locks.hold([department_scope_key(entry.department, entry.term)]):
        # The entry may have been replaced by an upload while we waited.
        entry = load_active_entry(db, entry_id)
        entry.venue_id = venue.id
        log_activity(
            db,
            "venue.assign",
            actor=user,
            target_id=entry.id,
            department=entry.department,
            venue_id=venue.id,
            previous_venue_id=previous_venue_id,
        )
        try:
            _resolver(db).assign(request)
        except VenueConflictError as exc:
            db.rollback()
            entry = load_active_entry(db, entry_id)
            suggestions = query_available_venues(
                db,
                entry.day_of_week,
                entry.start_time,
                entry.end_time,
                request.scope,
                class_id=entry.class_id,
            )
            exc.details["suggestions"] = [
                {"id": item.id, "name": item.name, "capacity": item.capacity, "location": item.location}
                for item in suggestions
            ]
            logger.info(
                "VENUE ASSIGN CONFLICT | entry_id=%s | venue_id=%s | suggestions=%s",
                entry_id,
                venue_id,
                len(suggestions),
            )
            raise

    db.refresh(entry)
    return entry
