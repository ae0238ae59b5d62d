from datetime import time
from io import BytesIO

import openpyxl
import pytest

from campus_timetable.core.exceptions import ParseError
from campus_timetable.services.sheet_parser import parse_workbook
from campus_timetable.services.workbook_template import build_template


def test_parses_rows_per_sheet_with_week_ranges(build_workbook):
    data = build_workbook(
        {
            "Weeks 1-4": [
                ["Mathematics", "ann@example.com", "Monday", "09:00", "10:00", "Room A"],
                ["Physics", "bob@example.com", "Tuesday", "11:00", "12:00", None],
            ],
            "Week 5": [["Chemistry", "ann@example.com", "Friday", "14:00", "15:30", "Lab 1"]],
        }
    )

    workbook = parse_workbook(data)

    assert [sheet.name for sheet in workbook.sheets] == ["Weeks 1-4", "Week 5"]
    first = workbook.sheets[0]
    assert (first.week_range.start_week, first.week_range.end_week) == (1, 4)
    assert first.rows[0].row_number == 2
    assert first.rows[0].venue_name == "Room A"
    assert first.rows[1].venue_name is None
    assert workbook.row_count == 3


def test_header_aliases_and_time_cells():
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = "Week 1"
    sheet.append(["Course", "Teacher", "Day", "From", "To", "Room"])
    sheet.append(["Biology", "cy@example.com", "wed", time(8, 30), time(9, 45), "Lab 2"])
    sheet.append(["History", "cy@example.com", "Thu", 0.375, 0.4375, None])
    buffer = BytesIO()
    workbook.save(buffer)

    parsed = parse_workbook(buffer.getvalue())

    rows = parsed.sheets[0].rows
    assert (rows[0].subject, rows[0].start_time, rows[0].end_time) == ("Biology", "08:30", "09:45")
    assert (rows[1].start_time, rows[1].end_time) == ("09:00", "10:30")


def test_blank_rows_are_ignored_and_row_numbers_follow_the_sheet(build_workbook):
    data = build_workbook(
        {
            "Week 2": [
                ["Art", "di@example.com", "Monday", "09:00", "10:00", None],
                [None, None, None, None, None, None],
                ["Music", "di@example.com", "Monday", "10:00", "11:00", None],
            ]
        }
    )
    rows = parse_workbook(data).sheets[0].rows
    assert [row.row_number for row in rows] == [2, 4]


def test_sheet_missing_required_columns_is_skipped():
    book = openpyxl.Workbook()
    week = book.active
    week.title = "Week 1"
    week.append(["subject", "teacherEmail", "dayOfWeek", "startTime", "endTime"])
    week.append(["Art", "di@example.com", "Monday", "09:00", "10:00"])
    notes = book.create_sheet("Notes")
    notes.append(["subject", "comment"])
    notes.append(["Art", "bring paint"])
    buffer = BytesIO()
    book.save(buffer)

    workbook = parse_workbook(buffer.getvalue())
    assert [sheet.name for sheet in workbook.sheets] == ["Week 1"]
    assert workbook.skipped[0].name == "Notes"
    assert "missing required column" in workbook.skipped[0].reason


def test_instructions_sheet_is_ignored_silently(build_workbook):
    data = build_workbook(
        {
            "Week 1": [["Art", "di@example.com", "Monday", "09:00", "10:00", None]],
            "Instructions": [["Mathematics", "teacher@example.com", "Monday", "09:00", "10:00", "Room A"]],
        }
    )
    workbook = parse_workbook(data)
    assert [sheet.name for sheet in workbook.sheets] == ["Week 1"]
    assert workbook.skipped == ()
    assert workbook.row_count == 1


def test_template_has_no_importable_rows():
    workbook = parse_workbook(build_template())
    assert [sheet.name for sheet in workbook.sheets] == ["Weeks 1-4", "Week 5"]
    assert workbook.row_count == 0
    assert workbook.skipped == ()


def test_malformed_range_is_kept_with_range_error(build_workbook):
    data = build_workbook({"Weeks 5-3": [["Art", "di@example.com", "Monday", "09:00", "10:00", None]]})
    sheet = parse_workbook(data).sheets[0]
    assert sheet.week_range is None
    assert sheet.range_error is not None
    assert len(sheet.rows) == 1


def test_unreadable_bytes_raise_parse_error():
    with pytest.raises(ParseError):
        parse_workbook(b"definitely not a workbook")


def test_empty_upload_raises_parse_error():
    with pytest.raises(ParseError):
        parse_workbook(b"")


def test_workbook_without_usable_sheets_raises_parse_error(build_workbook):
    with pytest.raises(ParseError) as exc_info:
        parse_workbook(build_workbook({"Notes": [["just text"]]}, header=["comment"]))
    assert exc_info.value.details["skipped"][0]["sheet"] == "Notes"


def test_row_limit_is_enforced(build_workbook):
    rows = [["Art", "di@example.com", "Monday", "09:00", "10:00", None]] * 3
    with pytest.raises(ParseError):
        parse_workbook(build_workbook({"Week 1": rows}), max_rows=2)
