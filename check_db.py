from sqlalchemy import func, select

from campus_timetable.db.session import SessionLocal
from campus_timetable.models.timetable import TimetableEntry, TimetableGeneration
from campus_timetable.models.venue_booking import VenueBooking

db = SessionLocal()
try:
    generations = db.execute(
        select(TimetableGeneration)
        .where(TimetableGeneration.is_active.is_(True))
        .order_by(TimetableGeneration.department, TimetableGeneration.term)
    ).scalars().all()
    print(f"Active generations: {len(generations)}")
    for generation in generations:
        entries = db.execute(
            select(func.count()).select_from(TimetableEntry).where(TimetableEntry.generation_id == generation.id)
        ).scalar_one()
        print(
            f"  - {generation.department} / {generation.term}: {entries} entries "
            f"({generation.term_start_date} to {generation.term_end_date}, created {generation.created_at})"
        )

    stale = db.execute(
        select(func.count())
        .select_from(TimetableGeneration)
        .where(TimetableGeneration.is_active.is_(False))
    ).scalar_one()
    print(f"Inactive generations: {stale}")
    print(f"Venue bookings: {db.execute(select(func.count()).select_from(VenueBooking)).scalar_one()}")
finally:
    db.close()
