import uuid
from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from campus_timetable.db.base import Base


class TimetableGeneration(Base):
    """One committed upload for a department and term.

    Entries hang off a generation; only the active generation is visible to
    readers, so a replacement becomes visible in a single flag flip.
    """

    __tablename__ = "timetable_generations"
    __table_args__ = (Index("ix_timetable_generations_scope", "department", "term", "is_active"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    department: Mapped[str] = mapped_column(String(200), nullable=False)
    term: Mapped[str] = mapped_column(String(100), nullable=False)
    term_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    term_end_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    entry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    skipped_error_rows: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class TimetableEntry(Base):
    __tablename__ = "timetable_entries"
    __table_args__ = (
        Index("ix_timetable_entries_week", "department", "term", "week_index"),
        Index("ix_timetable_entries_slot", "day_of_week", "week_start_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    generation_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("timetable_generations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    department: Mapped[str] = mapped_column(String(200), nullable=False)
    term: Mapped[str] = mapped_column(String(100), nullable=False)
    class_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    subject: Mapped[str] = mapped_column(String(200), nullable=False)
    teacher_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    day_of_week: Mapped[str] = mapped_column(String(20), nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    venue_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    week_index: Mapped[int] = mapped_column(Integer, nullable=False)
    week_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    week_end_date: Mapped[date] = mapped_column(Date, nullable=False)
    source_sheet: Mapped[str] = mapped_column(String(100), nullable=False)
    source_row: Mapped[int] = mapped_column(Integer, nullable=False)
    replacement_teacher_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    replacement_teacher_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    replacement_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    replacement_assigned_by_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    replacement_assigned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
