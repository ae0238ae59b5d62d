import pytest

from campus_timetable.services.directory import StaticTeacherDirectory, StaticVenueRegistry, VenueInfo
from campus_timetable.services.issue_messages import describe_issue, render_row_issue
from campus_timetable.services.row_validator import IssueCode, RowStatus, validate_row
from campus_timetable.services.sheet_parser import RawScheduleRow


@pytest.fixture
def teachers():
    return StaticTeacherDirectory({"ann@example.com": "teacher-ann"})


@pytest.fixture
def venues():
    return StaticVenueRegistry([VenueInfo(id="venue-a", name="Room A", capacity=40)])


def make_row(**overrides):
    values = {
        "sheet_name": "Weeks 1-4",
        "row_number": 2,
        "subject": "Math",
        "teacher_email": "ann@example.com",
        "day_of_week": "Monday",
        "start_time": "09:00",
        "end_time": "10:00",
        "venue_name": "Room A",
    }
    values.update(overrides)
    return RawScheduleRow(**values)


def test_complete_row_is_valid(teachers, venues):
    result = validate_row(make_row(), teachers, venues)
    assert result.status is RowStatus.valid
    assert result.issues == ()
    assert (result.teacher_id, result.venue_id) == ("teacher-ann", "venue-a")


def test_unknown_teacher_is_a_warning_and_keeps_the_row(venues):
    result = validate_row(make_row(teacher_email="bad-email"), StaticTeacherDirectory(), venues)
    assert result.status is RowStatus.warning
    assert [issue.code for issue in result.issues] == [IssueCode.teacher_not_found]
    assert result.teacher_id is None
    assert "teacher not found" in describe_issue(result.issues[0])


def test_unknown_venue_is_a_warning(teachers, venues):
    result = validate_row(make_row(venue_name="Hall Z"), teachers, venues)
    assert result.status is RowStatus.warning
    assert result.issues[0].code is IssueCode.venue_not_found
    assert result.venue_id is None


@pytest.mark.parametrize(("start", "end"), [("10:00", "10:00"), ("11:00", "10:00"), ("23:59", "00:00")])
def test_end_not_after_start_is_always_an_error(teachers, venues, start, end):
    result = validate_row(make_row(start_time=start, end_time=end), teachers, venues)
    assert result.status is RowStatus.error
    assert IssueCode.end_not_after_start in [issue.code for issue in result.issues]


def test_every_failing_field_is_reported(teachers, venues):
    result = validate_row(
        make_row(subject=None, teacher_email=None, day_of_week="Funday", start_time="9am", end_time="25:00"),
        teachers,
        venues,
    )
    assert result.status is RowStatus.error
    assert [issue.code for issue in result.issues] == [
        IssueCode.missing_subject,
        IssueCode.missing_teacher_email,
        IssueCode.invalid_day,
        IssueCode.invalid_start_time,
        IssueCode.invalid_end_time,
    ]


def test_day_and_time_are_normalized(teachers, venues):
    result = validate_row(make_row(day_of_week=" tue ", start_time="9:00", end_time="10:30:00"), teachers, venues)
    assert result.status is RowStatus.valid
    assert (result.day_of_week, result.start_time, result.end_time) == ("Tuesday", "09:00", "10:30")


def test_sheet_flags_are_attached_to_the_row(teachers, venues):
    result = validate_row(make_row(), teachers, venues, sheet_flags=(IssueCode.unscoped_sheet,))
    assert result.status is RowStatus.warning
    assert result.issues[-1].code is IssueCode.unscoped_sheet


def test_rendered_issue_names_sheet_and_row(teachers, venues):
    result = validate_row(make_row(day_of_week="Someday", row_number=7), teachers, venues)
    message = render_row_issue(result.row, result.issues[0])
    assert message == "Sheet \"Weeks 1-4\" row 7: day of week must be Monday to Sunday (got 'Someday')"
