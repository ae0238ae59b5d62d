import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, JSON, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from campus_timetable.db.base import Base


class SchoolClass(Base):
    __tablename__ = "classes"
    __table_args__ = (UniqueConstraint("department", "name", name="uq_classes_department_name"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    department: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    teacher_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    credits_required: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    enrolled_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Representative weekly pattern: [{"day", "start_time", "end_time", "venue"}]
    weekly_pattern: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    auto_generated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
