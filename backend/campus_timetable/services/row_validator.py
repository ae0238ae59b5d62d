from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from campus_timetable.schemas.timetable import normalize_day, normalize_time, parse_time_to_minutes
from campus_timetable.services.directory import TeacherDirectory, VenueRegistry
from campus_timetable.services.sheet_parser import RawScheduleRow


class RowStatus(str, Enum):
    valid = "valid"
    warning = "warning"
    error = "error"


class IssueSeverity(str, Enum):
    warning = "warning"
    error = "error"


class IssueCode(str, Enum):
    missing_subject = "missing_subject"
    missing_teacher_email = "missing_teacher_email"
    invalid_day = "invalid_day"
    invalid_start_time = "invalid_start_time"
    invalid_end_time = "invalid_end_time"
    end_not_after_start = "end_not_after_start"
    teacher_not_found = "teacher_not_found"
    venue_not_found = "venue_not_found"
    unscoped_sheet = "unscoped_sheet"
    invalid_week_range = "invalid_week_range"


ISSUE_SEVERITY = {
    IssueCode.missing_subject: IssueSeverity.error,
    IssueCode.missing_teacher_email: IssueSeverity.error,
    IssueCode.invalid_day: IssueSeverity.error,
    IssueCode.invalid_start_time: IssueSeverity.error,
    IssueCode.invalid_end_time: IssueSeverity.error,
    IssueCode.end_not_after_start: IssueSeverity.error,
    IssueCode.teacher_not_found: IssueSeverity.warning,
    IssueCode.venue_not_found: IssueSeverity.warning,
    IssueCode.unscoped_sheet: IssueSeverity.warning,
    IssueCode.invalid_week_range: IssueSeverity.warning,
}


@dataclass(frozen=True)
class RowIssue:
    code: IssueCode
    field: str | None = None
    value: str | None = None

    @property
    def severity(self) -> IssueSeverity:
        return ISSUE_SEVERITY[self.code]


@dataclass(frozen=True)
class ValidatedRow:
    row: RawScheduleRow
    status: RowStatus
    issues: tuple[RowIssue, ...]
    day_of_week: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    teacher_id: str | None = None
    venue_id: str | None = None

    @property
    def is_error(self) -> bool:
        return self.status is RowStatus.error


def validate_row(
    row: RawScheduleRow,
    teachers: TeacherDirectory,
    venues: VenueRegistry,
    *,
    sheet_flags: tuple[IssueCode, ...] = (),
) -> ValidatedRow:
    """Classify one raw row; every failing field gets its own issue.

    `sheet_flags` carries sheet-level warnings (unscoped or unusable week
    label) that apply to every row of the sheet. Nothing outside `row` is
    consulted besides the two lookups.
    """
    issues: list[RowIssue] = []

    if not row.subject:
        issues.append(RowIssue(IssueCode.missing_subject, "subject"))
    if not row.teacher_email:
        issues.append(RowIssue(IssueCode.missing_teacher_email, "teacherEmail"))

    day = normalize_day(row.day_of_week)
    if day is None:
        issues.append(RowIssue(IssueCode.invalid_day, "dayOfWeek", row.day_of_week))

    start = normalize_time(row.start_time)
    if start is None:
        issues.append(RowIssue(IssueCode.invalid_start_time, "startTime", row.start_time))
    end = normalize_time(row.end_time)
    if end is None:
        issues.append(RowIssue(IssueCode.invalid_end_time, "endTime", row.end_time))
    if start is not None and end is not None and parse_time_to_minutes(end) <= parse_time_to_minutes(start):
        issues.append(RowIssue(IssueCode.end_not_after_start, "endTime", f"{start}-{end}"))

    teacher_id = None
    if row.teacher_email:
        teacher_id = teachers.lookup_teacher(row.teacher_email)
        if teacher_id is None:
            issues.append(RowIssue(IssueCode.teacher_not_found, "teacherEmail", row.teacher_email))

    venue_id = None
    if row.venue_name:
        venue_id = venues.lookup_venue(row.venue_name)
        if venue_id is None:
            issues.append(RowIssue(IssueCode.venue_not_found, "venue", row.venue_name))

    issues.extend(RowIssue(code) for code in sheet_flags)

    if any(issue.severity is IssueSeverity.error for issue in issues):
        status = RowStatus.error
    elif issues:
        status = RowStatus.warning
    else:
        status = RowStatus.valid

    return ValidatedRow(
        row=row,
        status=status,
        issues=tuple(issues),
        day_of_week=day,
        start_time=start,
        end_time=end,
        teacher_id=teacher_id,
        venue_id=venue_id,
    )
