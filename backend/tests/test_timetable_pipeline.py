from datetime import date

import pytest

from campus_timetable.core.exceptions import ParseError
from campus_timetable.schemas.timetable import TermWindow
from campus_timetable.services.directory import StaticTeacherDirectory, StaticVenueRegistry, VenueInfo
from campus_timetable.services.timetable_pipeline import preview_timetable, run_pipeline

TERM = TermWindow(term="2024-S1", start_date=date(2024, 1, 1), end_date=date(2024, 3, 29))
TEACHERS = StaticTeacherDirectory({"ann@example.com": "teacher-ann"})
VENUES = StaticVenueRegistry([VenueInfo(id="venue-a", name="Room A", capacity=40)])


def test_preview_counts_rows_and_entries(build_workbook):
    data = build_workbook(
        {
            "Weeks 1-3": [
                ["Math", "ann@example.com", "Monday", "09:00", "10:00", "Room A"],
                ["Math", "bad-email", "Monday", "10:00", "11:00", "Room A"],
                ["Physics", "ann@example.com", "Tuesday", "12:00", "11:00", None],
            ]
        }
    )

    summary = preview_timetable(data, TERM, TEACHERS, VENUES)

    assert (summary.total_rows, summary.valid_rows, summary.warning_rows, summary.error_rows) == (3, 1, 1, 1)
    assert summary.entry_count == 6
    assert summary.sheets[0].week_starts == [date(2024, 1, 1), date(2024, 1, 8), date(2024, 1, 15)]
    assert summary.errors == ['Sheet "Weeks 1-3" row 4: end time must be after start time']
    assert any("teacher not found" in warning for warning in summary.warnings)
    unassigned = [entry for entry in summary.entries if entry.row == 3]
    assert len(unassigned) == 3
    assert all(entry.teacher_id is None for entry in unassigned)


def test_preview_json_uses_camel_case_keys(build_workbook):
    data = build_workbook({"Week 1": [["Math", "ann@example.com", "Monday", "09:00", "10:00", None]]})
    payload = preview_timetable(data, TERM, TEACHERS, VENUES).model_dump(by_alias=True, mode="json")
    assert payload["totalRows"] == 1
    assert payload["entries"][0]["weekStartDate"] == "2024-01-01"
    assert payload["rows"][0]["teacherEmail"] == "ann@example.com"


def test_unscoped_sheet_covers_term_and_warns_on_every_row(build_workbook):
    term = TermWindow(term="2024-S1", start_date=date(2024, 1, 1), end_date=date(2024, 1, 28))
    data = build_workbook(
        {
            "Timetable": [
                ["Math", "ann@example.com", "Monday", "09:00", "10:00", None],
                ["Art", "ann@example.com", "Friday", "09:00", "10:00", None],
            ]
        }
    )

    result = run_pipeline(data, term, TEACHERS, VENUES)

    assert result.warning_rows == 2
    assert len(result.entries) == 8
    assert any('no "Week N"' in warning for warning in result.warnings)


def test_reject_policy_skips_unscoped_sheets(build_workbook):
    data = build_workbook(
        {
            "Week 1": [["Math", "ann@example.com", "Monday", "09:00", "10:00", None]],
            "Timetable": [["Art", "ann@example.com", "Friday", "09:00", "10:00", None]],
        }
    )
    result = run_pipeline(data, TERM, TEACHERS, VENUES, unscoped_policy="reject")
    assert [sheet.name for sheet in result.sheets] == ["Week 1"]
    assert any('Skipping sheet "Timetable"' in warning for warning in result.warnings)


def test_reject_policy_with_only_unscoped_sheets_is_fatal(build_workbook):
    data = build_workbook({"Timetable": [["Art", "ann@example.com", "Friday", "09:00", "10:00", None]]})
    with pytest.raises(ParseError):
        run_pipeline(data, TERM, TEACHERS, VENUES, unscoped_policy="reject")


def test_invalid_week_range_yields_no_entries(build_workbook):
    data = build_workbook({"Weeks 5-3": [["Math", "ann@example.com", "Monday", "09:00", "10:00", None]]})
    result = run_pipeline(data, TERM, TEACHERS, VENUES)
    assert result.total_rows == 1
    assert result.warning_rows == 1
    assert result.entries == ()
    assert any("invalid week range" in warning for warning in result.warnings)


def test_weeks_beyond_term_are_reported(build_workbook):
    term = TermWindow(term="short", start_date=date(2024, 1, 1), end_date=date(2024, 1, 14))
    data = build_workbook({"Weeks 1-3": [["Math", "ann@example.com", "Monday", "09:00", "10:00", None]]})
    result = run_pipeline(data, term, TEACHERS, VENUES)
    assert len(result.entries) == 2
    assert any("Week 3" in warning and "after the term ends" in warning for warning in result.warnings)


def test_preview_and_rerun_produce_identical_entries(build_workbook):
    data = build_workbook({"Weeks 1-2": [["Math", "ann@example.com", "Monday", "09:00", "10:00", "Room A"]]})
    assert run_pipeline(data, TERM, TEACHERS, VENUES).entries == run_pipeline(data, TERM, TEACHERS, VENUES).entries
