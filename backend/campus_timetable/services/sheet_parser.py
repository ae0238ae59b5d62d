"""Workbook intake: one uploaded .xlsx file into raw schedule rows per sheet."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time
from io import BytesIO
import logging
import re
from zipfile import BadZipFile

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from campus_timetable.core.exceptions import ParseError, RangeError
from campus_timetable.services.week_ranges import WeekRangeSpec, parse_week_range

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("subject", "teacher_email", "day_of_week", "start_time", "end_time")
OPTIONAL_COLUMNS = ("venue",)

COLUMN_ALIASES = {
    "subject": "subject",
    "subjectname": "subject",
    "course": "subject",
    "teacheremail": "teacher_email",
    "teacher": "teacher_email",
    "email": "teacher_email",
    "lectureremail": "teacher_email",
    "dayofweek": "day_of_week",
    "day": "day_of_week",
    "weekday": "day_of_week",
    "starttime": "start_time",
    "start": "start_time",
    "from": "start_time",
    "endtime": "end_time",
    "end": "end_time",
    "to": "end_time",
    "venue": "venue",
    "venuename": "venue",
    "room": "venue",
}

_TIME_COLUMNS = {"start_time", "end_time"}

# Guidance sheets shipped with the download template; never read as schedule data.
REFERENCE_SHEET_NAMES = frozenset({"instructions", "readme"})


@dataclass(frozen=True)
class RawScheduleRow:
    sheet_name: str
    row_number: int
    subject: str | None
    teacher_email: str | None
    day_of_week: str | None
    start_time: str | None
    end_time: str | None
    venue_name: str | None = None


@dataclass(frozen=True)
class ParsedSheet:
    name: str
    week_range: WeekRangeSpec | None
    rows: tuple[RawScheduleRow, ...]
    range_error: RangeError | None = None


@dataclass(frozen=True)
class SkippedSheet:
    name: str
    reason: str


@dataclass(frozen=True)
class ParsedWorkbook:
    sheets: tuple[ParsedSheet, ...]
    skipped: tuple[SkippedSheet, ...] = field(default_factory=tuple)

    @property
    def row_count(self) -> int:
        return sum(len(sheet.rows) for sheet in self.sheets)


def _header_key(value: object) -> str | None:
    if value is None:
        return None
    compact = re.sub(r"[^a-z]", "", str(value).lower())
    return COLUMN_ALIASES.get(compact)


def _text_cell(value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def _time_cell(value: object) -> str | None:
    # Excel keeps times as time/datetime objects or as a fraction of a day.
    if isinstance(value, datetime):
        return value.strftime("%H:%M")
    if isinstance(value, time):
        return value.strftime("%H:%M")
    if isinstance(value, float) and 0 <= value < 1:
        minutes = round(value * 24 * 60)
        return f"{minutes // 60:02d}:{minutes % 60:02d}"
    return _text_cell(value)


def _locate_header(rows: list[tuple]) -> tuple[int, dict[str, int]] | None:
    for position, values in enumerate(rows):
        if all(_text_cell(value) is None for value in values):
            continue
        columns: dict[str, int] = {}
        for index, value in enumerate(values):
            key = _header_key(value)
            if key is not None and key not in columns:
                columns[key] = index
        return position, columns
    return None


def _read_sheet(name: str, rows: list[tuple]) -> ParsedSheet | SkippedSheet:
    located = _locate_header(rows)
    if located is None:
        return SkippedSheet(name, "sheet is empty")
    header_position, columns = located
    missing = [column for column in REQUIRED_COLUMNS if column not in columns]
    if missing:
        return SkippedSheet(name, f"missing required column(s): {', '.join(missing)}")

    def cell(values: tuple, column: str) -> str | None:
        index = columns.get(column)
        if index is None or index >= len(values):
            return None
        raw = values[index]
        return _time_cell(raw) if column in _TIME_COLUMNS else _text_cell(raw)

    parsed: list[RawScheduleRow] = []
    for offset, values in enumerate(rows[header_position + 1 :], start=header_position + 2):
        record = {column: cell(values, column) for column in (*REQUIRED_COLUMNS, *OPTIONAL_COLUMNS)}
        if all(record[column] is None for column in REQUIRED_COLUMNS):
            continue
        parsed.append(
            RawScheduleRow(
                sheet_name=name,
                row_number=offset,
                subject=record["subject"],
                teacher_email=record["teacher_email"],
                day_of_week=record["day_of_week"],
                start_time=record["start_time"],
                end_time=record["end_time"],
                venue_name=record["venue"],
            )
        )

    week_range = None
    range_error = None
    try:
        week_range = parse_week_range(name)
    except RangeError as exc:
        range_error = exc
    return ParsedSheet(name=name, week_range=week_range, rows=tuple(parsed), range_error=range_error)


def parse_workbook(data: bytes, *, max_rows: int | None = None) -> ParsedWorkbook:
    """Read every worksheet of an .xlsx workbook.

    Raises ParseError when the bytes are not a readable workbook, when no
    sheet carries the required columns, or when the data rows exceed
    `max_rows`.
    """
    if not data:
        raise ParseError("Uploaded workbook is empty.")
    try:
        workbook = openpyxl.load_workbook(BytesIO(data), read_only=True, data_only=True)
    except (BadZipFile, InvalidFileException, KeyError, OSError, ValueError) as exc:
        raise ParseError("Uploaded file is not a readable .xlsx workbook.", details={"reason": str(exc)}) from exc

    sheets: list[ParsedSheet] = []
    skipped: list[SkippedSheet] = []
    try:
        for worksheet in workbook.worksheets:
            if worksheet.title.strip().lower() in REFERENCE_SHEET_NAMES:
                logger.debug("SHEET IGNORED | sheet=%s", worksheet.title)
                continue
            result = _read_sheet(worksheet.title, list(worksheet.iter_rows(values_only=True)))
            if isinstance(result, SkippedSheet):
                logger.warning("SHEET SKIPPED | sheet=%s | reason=%s", result.name, result.reason)
                skipped.append(result)
            else:
                sheets.append(result)
    finally:
        workbook.close()

    if not sheets:
        raise ParseError(
            "No usable sheets found in the uploaded workbook.",
            details={"skipped": [{"sheet": item.name, "reason": item.reason} for item in skipped]},
        )

    parsed = ParsedWorkbook(sheets=tuple(sheets), skipped=tuple(skipped))
    if max_rows is not None and parsed.row_count > max_rows:
        raise ParseError(
            f"Workbook has {parsed.row_count} schedule rows; the limit is {max_rows}.",
            details={"row_count": parsed.row_count, "max_rows": max_rows},
        )
    return parsed
