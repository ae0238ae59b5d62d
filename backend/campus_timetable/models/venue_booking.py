import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from campus_timetable.db.base import Base


class VenueBooking(Base):
    __tablename__ = "venue_bookings"
    __table_args__ = (Index("ix_venue_bookings_slot", "venue_id", "term", "day_of_week"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    venue_id: Mapped[str] = mapped_column(String(36), ForeignKey("venues.id", ondelete="CASCADE"), nullable=False)
    term: Mapped[str] = mapped_column(String(100), nullable=False)
    day_of_week: Mapped[str] = mapped_column(String(20), nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    # NULL means the booking holds for every week of the term.
    week_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    entry_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("timetable_entries.id", ondelete="CASCADE"), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
