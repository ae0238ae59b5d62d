from __future__ import annotations

from datetime import date, datetime
import re

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DAY_ORDER = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

DAY_VALUES = set(DAY_ORDER)

DAY_ALIASES = {
    "mon": "Monday",
    "tue": "Tuesday",
    "tues": "Tuesday",
    "wed": "Wednesday",
    "thu": "Thursday",
    "thur": "Thursday",
    "thurs": "Thursday",
    "fri": "Friday",
    "sat": "Saturday",
    "sun": "Sunday",
}

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
_LOOSE_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?$")


def parse_time_to_minutes(value: str) -> int:
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def normalize_day(value: str | None) -> str | None:
    """Canonical weekday name for `value`, or None when it names no weekday."""
    if value is None:
        return None
    cleaned = value.strip().rstrip(".").lower()
    if not cleaned:
        return None
    for day in DAY_ORDER:
        if cleaned == day.lower():
            return day
    return DAY_ALIASES.get(cleaned)


def normalize_subject(value: str) -> str:
    """Subject with runs of whitespace collapsed; class names are stored this way."""
    return " ".join(value.split())


def normalize_time(value: str | None) -> str | None:
    """Zero-padded HH:MM for `value` ("9:00", "09:00:00"), or None if unparseable."""
    if value is None:
        return None
    match = _LOOSE_TIME_PATTERN.match(value.strip())
    if not match:
        return None
    candidate = f"{int(match.group(1)):02d}:{match.group(2)}"
    if not TIME_PATTERN.match(candidate):
        return None
    return candidate


class TermWindow(BaseModel):
    term: str = Field(min_length=1, max_length=100)
    start_date: date = Field(alias="startDate")
    end_date: date = Field(alias="endDate")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("term")
    @classmethod
    def strip_term(cls, value: str) -> str:
        term = value.strip()
        if not term:
            raise ValueError("term must not be blank")
        return term

    @model_validator(mode="after")
    def validate_order(self) -> "TermWindow":
        if self.end_date < self.start_date:
            raise ValueError("endDate must be on or after startDate")
        return self


class RowIssueOut(BaseModel):
    code: str
    severity: str
    field: str | None = None
    message: str


class PreviewRow(BaseModel):
    sheet: str
    row: int
    subject: str | None
    teacher_email: str | None = Field(serialization_alias="teacherEmail")
    day_of_week: str | None = Field(serialization_alias="dayOfWeek")
    start_time: str | None = Field(serialization_alias="startTime")
    end_time: str | None = Field(serialization_alias="endTime")
    venue: str | None
    status: str
    issues: list[RowIssueOut]
    week_count: int = Field(serialization_alias="weekCount")


class SheetSummary(BaseModel):
    name: str
    start_week: int | None = Field(serialization_alias="startWeek")
    end_week: int | None = Field(serialization_alias="endWeek")
    scoped: bool
    week_starts: list[date] = Field(serialization_alias="weekStarts")
    row_count: int = Field(serialization_alias="rowCount")


class EntryDraftOut(BaseModel):
    sheet: str
    row: int
    subject: str
    class_id: str | None = Field(serialization_alias="classId")
    teacher_id: str | None = Field(serialization_alias="teacherId")
    day_of_week: str = Field(serialization_alias="dayOfWeek")
    start_time: str = Field(serialization_alias="startTime")
    end_time: str = Field(serialization_alias="endTime")
    venue_id: str | None = Field(serialization_alias="venueId")
    week_index: int = Field(serialization_alias="weekIndex")
    week_start_date: date = Field(serialization_alias="weekStartDate")


class PreviewSummary(BaseModel):
    term: str
    total_rows: int = Field(serialization_alias="totalRows")
    valid_rows: int = Field(serialization_alias="validRows")
    warning_rows: int = Field(serialization_alias="warningRows")
    error_rows: int = Field(serialization_alias="errorRows")
    entry_count: int = Field(serialization_alias="entryCount")
    errors: list[str]
    warnings: list[str]
    sheets: list[SheetSummary]
    rows: list[PreviewRow]
    entries: list[EntryDraftOut]


class CommitResult(BaseModel):
    department: str
    term: str
    generation_id: str = Field(serialization_alias="generationId")
    created_entry_count: int = Field(serialization_alias="createdEntryCount")
    replaced_entry_count: int = Field(serialization_alias="replacedEntryCount")
    skipped_error_rows: int = Field(serialization_alias="skippedErrorRows")
    classes_created: int = Field(serialization_alias="classesCreated")
    classes_updated: int = Field(serialization_alias="classesUpdated")
    warnings: list[str]


class TimetableEntryOut(BaseModel):
    id: str
    department: str
    term: str
    class_id: str | None = Field(serialization_alias="classId")
    subject: str
    teacher_id: str | None = Field(serialization_alias="teacherId")
    day_of_week: str = Field(serialization_alias="dayOfWeek")
    start_time: str = Field(serialization_alias="startTime")
    end_time: str = Field(serialization_alias="endTime")
    venue_id: str | None = Field(serialization_alias="venueId")
    week_index: int = Field(serialization_alias="weekIndex")
    week_start_date: date = Field(serialization_alias="weekStartDate")
    week_end_date: date = Field(serialization_alias="weekEndDate")
    replacement_teacher_id: str | None = Field(default=None, serialization_alias="replacementTeacherId")
    replacement_teacher_name: str | None = Field(default=None, serialization_alias="replacementTeacherName")
    replacement_reason: str | None = Field(default=None, serialization_alias="replacementReason")
    replacement_assigned_at: datetime | None = Field(default=None, serialization_alias="replacementAssignedAt")

    model_config = {"from_attributes": True}


class ReplacementAssignRequest(BaseModel):
    replacement_teacher_id: str | None = Field(default=None, alias="replacementTeacherId")
    replacement_name: str | None = Field(default=None, max_length=200, alias="replacementName")
    reason: str | None = Field(default=None, max_length=500)

    model_config = {"populate_by_name": True}

    @field_validator("replacement_teacher_id", "replacement_name", "reason")
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @model_validator(mode="after")
    def require_teacher(self) -> "ReplacementAssignRequest":
        if self.replacement_teacher_id is None and self.replacement_name is None:
            raise ValueError("replacementTeacherId or replacementName is required")
        return self


class StudentWeekOut(BaseModel):
    week: int
    department: str | None
    entries: list[TimetableEntryOut]
