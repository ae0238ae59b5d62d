from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from campus_timetable.api.deps import MANAGING_ROLES, ensure_department_access, get_current_user, get_db, require_roles
from campus_timetable.core.exceptions import ValidationError
from campus_timetable.models.user import User, UserRole
from campus_timetable.models.venue import Venue
from campus_timetable.models.venue_booking import VenueBooking
from campus_timetable.schemas.timetable import TimetableEntryOut
from campus_timetable.schemas.venue import AvailabilityQuery, VenueAssignRequest, VenueCreate, VenueOut, VenueUpdate
from campus_timetable.services.audit import log_activity
from campus_timetable.services.timetable_queries import load_active_entry
from campus_timetable.services.venue_assignment import assign_venue, query_available_venues
from campus_timetable.services.venue_conflicts import WeekScope

router = APIRouter()


@router.get("/", response_model=list[VenueOut])
def list_venues(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> list[VenueOut]:
    return list(db.execute(select(Venue).order_by(Venue.name)).scalars())


@router.get("/available", response_model=list[VenueOut])
def available_venues(
    day_of_week: str = Query(alias="dayOfWeek"),
    start_time: str = Query(alias="startTime"),
    end_time: str = Query(alias="endTime"),
    term: str = Query(),
    week_start: date | None = Query(default=None, alias="weekStart"),
    class_id: str | None = Query(default=None, alias="classId"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[VenueOut]:
    try:
        query = AvailabilityQuery(
            day_of_week=day_of_week,
            start_time=start_time,
            end_time=end_time,
            term=term,
            week_start=week_start,
            class_id=class_id,
        )
    except PydanticValidationError as exc:
        raise ValidationError(
            "Invalid availability query.",
            details={"errors": [{"field": ".".join(str(p) for p in item["loc"]), "message": item["msg"]} for item in exc.errors()]},
        ) from exc

    return query_available_venues(
        db,
        query.day_of_week,
        query.start_time,
        query.end_time,
        WeekScope(term=query.term, week_start=query.week_start),
        class_id=query.class_id,
    )


@router.post("/assign", response_model=TimetableEntryOut)
def assign_venue_to_entry(
    payload: VenueAssignRequest,
    current_user: User = Depends(require_roles(*MANAGING_ROLES)),
    db: Session = Depends(get_db),
) -> TimetableEntryOut:
    ensure_department_access(current_user, load_active_entry(db, payload.timetable_id).department)
    return assign_venue(db, payload.timetable_id, payload.venue_id, user=current_user)


@router.post("/", response_model=VenueOut, status_code=status.HTTP_201_CREATED)
def create_venue(
    payload: VenueCreate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> VenueOut:
    existing = db.execute(select(Venue).where(Venue.name == payload.name)).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Venue name already exists")
    venue = Venue(**payload.model_dump())
    db.add(venue)
    db.flush()
    log_activity(db, "venue.create", actor=current_user, target_id=venue.id, name=venue.name, capacity=venue.capacity)
    db.commit()
    db.refresh(venue)
    return venue


@router.put("/{venue_id}", response_model=VenueOut)
def update_venue(
    venue_id: str,
    payload: VenueUpdate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> VenueOut:
    venue = db.get(Venue, venue_id)
    if venue is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Venue not found")

    data = payload.model_dump(exclude_unset=True)
    if "name" in data:
        existing = db.execute(select(Venue).where(Venue.name == data["name"], Venue.id != venue_id)).scalar_one_or_none()
        if existing:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Venue name already exists")

    for key, value in data.items():
        setattr(venue, key, value)
    if data:
        log_activity(db, "venue.update", actor=current_user, target_id=venue.id, fields=sorted(data))
    db.commit()
    db.refresh(venue)
    return venue


@router.delete("/{venue_id}")
def delete_venue(
    venue_id: str,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> dict:
    venue = db.get(Venue, venue_id)
    if venue is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Venue not found")
    booked = db.execute(select(VenueBooking.id).where(VenueBooking.venue_id == venue_id).limit(1)).first()
    if booked is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Venue has bookings; mark it unavailable instead")
    log_activity(db, "venue.delete", actor=current_user, target_id=venue.id, name=venue.name)
    db.delete(venue)
    db.commit()
    return {"success": True}
