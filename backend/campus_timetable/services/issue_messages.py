from __future__ import annotations

from campus_timetable.core.exceptions import RangeError, RangeExhaustedWarning
from campus_timetable.services.row_validator import IssueCode, RowIssue
from campus_timetable.services.sheet_parser import RawScheduleRow, SkippedSheet

ISSUE_TEXT = {
    IssueCode.missing_subject: "subject is required",
    IssueCode.missing_teacher_email: "teacher email is required",
    IssueCode.invalid_day: "day of week must be Monday to Sunday",
    IssueCode.invalid_start_time: "start time must be HH:MM (24h)",
    IssueCode.invalid_end_time: "end time must be HH:MM (24h)",
    IssueCode.end_not_after_start: "end time must be after start time",
    IssueCode.teacher_not_found: "teacher not found, will be unassigned",
    IssueCode.venue_not_found: "venue not found, will be unassigned",
    IssueCode.unscoped_sheet: "sheet name has no week range, applied to the whole term",
    IssueCode.invalid_week_range: "sheet week range is invalid, row will not be scheduled",
}


def describe_issue(issue: RowIssue) -> str:
    text = ISSUE_TEXT[issue.code]
    if issue.value and issue.code not in (IssueCode.end_not_after_start,):
        return f"{text} (got {issue.value!r})"
    return text


def render_row_issue(row: RawScheduleRow, issue: RowIssue) -> str:
    return f'Sheet "{row.sheet_name}" row {row.row_number}: {describe_issue(issue)}'


def render_skipped_sheet(sheet: SkippedSheet) -> str:
    return f'Skipping sheet "{sheet.name}": {sheet.reason}'


def render_range_error(error: RangeError) -> str:
    return f'Sheet "{error.sheet_name}" has an invalid week range ({error.reason}); its rows were not scheduled'


def render_unscoped_sheet(sheet_name: str, week_count: int) -> str:
    return f'Sheet "{sheet_name}" has no "Week N" or "Weeks N-M" name; applied to all {week_count} week(s) of the term'


def render_dropped_week(warning: RangeExhaustedWarning) -> str:
    return str(warning)
