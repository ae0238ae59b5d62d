"""Workbook → validated rows → dated entries, shared by preview and commit.

The pipeline is deterministic and side-effect free. Preview and commit each
run it from the uploaded bytes; nothing from a preview is ever reused by a
commit.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging

from campus_timetable.core.exceptions import ParseError
from campus_timetable.schemas.timetable import (
    EntryDraftOut,
    PreviewRow,
    PreviewSummary,
    RowIssueOut,
    SheetSummary,
    TermWindow,
)
from campus_timetable.services.directory import ClassRegistry, TeacherDirectory, VenueRegistry
from campus_timetable.services.issue_messages import (
    describe_issue,
    render_dropped_week,
    render_range_error,
    render_row_issue,
    render_skipped_sheet,
    render_unscoped_sheet,
)
from campus_timetable.services.row_validator import IssueCode, IssueSeverity, RowStatus, validate_row
from campus_timetable.services.sheet_parser import ParsedWorkbook, SkippedSheet, parse_workbook
from campus_timetable.services.timetable_expander import EntryDraft, ValidatedSheet, expand_rows
from campus_timetable.services.week_ranges import WeekResolution, resolve_weeks

logger = logging.getLogger(__name__)

SHEET_LEVEL_CODES = (IssueCode.unscoped_sheet, IssueCode.invalid_week_range)


@dataclass(frozen=True)
class PipelineResult:
    term: TermWindow
    workbook: ParsedWorkbook
    sheets: tuple[ValidatedSheet, ...]
    entries: tuple[EntryDraft, ...]
    errors: tuple[str, ...]
    warnings: tuple[str, ...]

    def _count(self, status: RowStatus) -> int:
        return sum(1 for sheet in self.sheets for row in sheet.rows if row.status is status)

    @property
    def total_rows(self) -> int:
        return sum(len(sheet.rows) for sheet in self.sheets)

    @property
    def valid_rows(self) -> int:
        return self._count(RowStatus.valid)

    @property
    def warning_rows(self) -> int:
        return self._count(RowStatus.warning)

    @property
    def error_rows(self) -> int:
        return self._count(RowStatus.error)


def run_pipeline(
    data: bytes,
    term: TermWindow,
    teachers: TeacherDirectory,
    venues: VenueRegistry,
    *,
    classes: ClassRegistry | None = None,
    max_rows: int | None = None,
    unscoped_policy: str = "cover_term",
) -> PipelineResult:
    workbook = parse_workbook(data, max_rows=max_rows)

    errors: list[str] = []
    warnings: list[str] = [render_skipped_sheet(item) for item in workbook.skipped]
    validated_sheets: list[ValidatedSheet] = []

    for sheet in workbook.sheets:
        flags: tuple[IssueCode, ...] = ()
        if sheet.range_error is not None:
            resolution = WeekResolution(weeks=())
            flags = (IssueCode.invalid_week_range,)
            warnings.append(render_range_error(sheet.range_error))
        elif sheet.week_range is None and unscoped_policy == "reject":
            warnings.append(render_skipped_sheet(SkippedSheet(sheet.name, 'name is not "Week N" or "Weeks N-M"')))
            continue
        else:
            resolution = resolve_weeks(sheet.week_range, term, sheet_name=sheet.name)
            if not resolution.scoped:
                flags = (IssueCode.unscoped_sheet,)
                warnings.append(render_unscoped_sheet(sheet.name, len(resolution.weeks)))
            warnings.extend(render_dropped_week(item) for item in resolution.dropped)

        rows = tuple(validate_row(row, teachers, venues, sheet_flags=flags) for row in sheet.rows)
        for validated in rows:
            for issue in validated.issues:
                if issue.code in SHEET_LEVEL_CODES:
                    continue
                message = render_row_issue(validated.row, issue)
                if issue.severity is IssueSeverity.error:
                    errors.append(message)
                else:
                    warnings.append(message)
        validated_sheets.append(ValidatedSheet(name=sheet.name, resolution=resolution, rows=rows))

    if not validated_sheets:
        raise ParseError("No valid sheets found in the uploaded file.", details={"warnings": warnings})

    entries = expand_rows(validated_sheets, classes=classes)
    return PipelineResult(
        term=term,
        workbook=workbook,
        sheets=tuple(validated_sheets),
        entries=tuple(entries),
        errors=tuple(errors),
        warnings=tuple(warnings),
    )


def summarize(result: PipelineResult) -> PreviewSummary:
    rows: list[PreviewRow] = []
    sheets: list[SheetSummary] = []
    for sheet in result.sheets:
        week_range = next((item.week_range for item in result.workbook.sheets if item.name == sheet.name), None)
        sheets.append(
            SheetSummary(
                name=sheet.name,
                start_week=week_range.start_week if week_range else None,
                end_week=week_range.end_week if week_range else None,
                scoped=sheet.resolution.scoped,
                week_starts=sheet.resolution.week_starts,
                row_count=len(sheet.rows),
            )
        )
        for validated in sheet.rows:
            raw = validated.row
            rows.append(
                PreviewRow(
                    sheet=sheet.name,
                    row=raw.row_number,
                    subject=raw.subject,
                    teacher_email=raw.teacher_email,
                    day_of_week=validated.day_of_week or raw.day_of_week,
                    start_time=validated.start_time or raw.start_time,
                    end_time=validated.end_time or raw.end_time,
                    venue=raw.venue_name,
                    status=validated.status.value,
                    issues=[
                        RowIssueOut(
                            code=issue.code.value,
                            severity=issue.severity.value,
                            field=issue.field,
                            message=describe_issue(issue),
                        )
                        for issue in validated.issues
                    ],
                    week_count=0 if validated.is_error else len(sheet.resolution.weeks),
                )
            )

    return PreviewSummary(
        term=result.term.term,
        total_rows=result.total_rows,
        valid_rows=result.valid_rows,
        warning_rows=result.warning_rows,
        error_rows=result.error_rows,
        entry_count=len(result.entries),
        errors=list(result.errors),
        warnings=list(result.warnings),
        sheets=sheets,
        rows=rows,
        entries=[
            EntryDraftOut(
                sheet=entry.sheet_name,
                row=entry.row_number,
                subject=entry.subject,
                class_id=entry.class_id,
                teacher_id=entry.teacher_id,
                day_of_week=entry.day_of_week,
                start_time=entry.start_time,
                end_time=entry.end_time,
                venue_id=entry.venue_id,
                week_index=entry.week_index,
                week_start_date=entry.week_start_date,
            )
            for entry in result.entries
        ],
    )


def preview_timetable(
    data: bytes,
    term: TermWindow,
    teachers: TeacherDirectory,
    venues: VenueRegistry,
    *,
    classes: ClassRegistry | None = None,
    max_rows: int | None = None,
    unscoped_policy: str = "cover_term",
) -> PreviewSummary:
    """Dry run: full pipeline, no persistence, no venue reservation."""
    result = run_pipeline(
        data,
        term,
        teachers,
        venues,
        classes=classes,
        max_rows=max_rows,
        unscoped_policy=unscoped_policy,
    )
    logger.info(
        "TIMETABLE PREVIEW | term=%s | rows=%s | valid=%s | warnings=%s | errors=%s | entries=%s",
        term.term,
        result.total_rows,
        result.valid_rows,
        result.warning_rows,
        result.error_rows,
        len(result.entries),
    )
    return summarize(result)
