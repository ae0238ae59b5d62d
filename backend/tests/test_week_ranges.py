from datetime import date, timedelta

import pytest

from campus_timetable.core.exceptions import RangeError
from campus_timetable.schemas.timetable import TermWindow
from campus_timetable.services.week_ranges import parse_week_range, resolve_weeks, term_week_count


def make_term(start=date(2024, 1, 1), end=date(2024, 3, 29)):
    return TermWindow(term="2024-S1", start_date=start, end_date=end)


@pytest.mark.parametrize(
    ("label", "expected"),
    [
        ("Weeks 1-4", (1, 4)),
        ("weeks 2 - 5", (2, 5)),
        ("Week 6", (6, 6)),
        ("WEEKS 3 to 7", (3, 7)),
        ("Weeks 1–3", (1, 3)),
    ],
)
def test_parse_week_range_labels(label, expected):
    spec = parse_week_range(label)
    assert spec is not None
    assert (spec.start_week, spec.end_week) == expected
    assert spec.week_count == expected[1] - expected[0] + 1


def test_parse_week_range_returns_none_for_unscoped_names():
    assert parse_week_range("Sheet1") is None
    assert parse_week_range("Timetable") is None


def test_parse_week_range_rejects_reversed_range():
    with pytest.raises(RangeError) as exc_info:
        parse_week_range("Weeks 5-3")
    assert exc_info.value.sheet_name == "Weeks 5-3"


def test_parse_week_range_rejects_week_zero():
    with pytest.raises(RangeError):
        parse_week_range("Week 0")


def test_weeks_one_to_three_from_monday_term_start():
    resolution = resolve_weeks(parse_week_range("Weeks 1-3"), make_term())
    assert resolution.week_starts == [date(2024, 1, 1), date(2024, 1, 8), date(2024, 1, 15)]
    assert resolution.dropped == ()
    assert resolution.scoped is True


@pytest.mark.parametrize(("first", "last"), [(1, 1), (1, 4), (3, 7), (10, 13)])
def test_resolved_weeks_are_contiguous(first, last):
    term = make_term()
    resolution = resolve_weeks(parse_week_range(f"Weeks {first}-{last}"), term)
    starts = resolution.week_starts
    assert len(starts) == last - first + 1
    assert starts[0] == term.start_date + timedelta(days=7 * (first - 1))
    assert all(later - earlier == timedelta(days=7) for earlier, later in zip(starts, starts[1:]))


def test_week_start_is_floored_to_monday_for_midweek_term():
    term = make_term(start=date(2024, 1, 3), end=date(2024, 2, 28))
    resolution = resolve_weeks(parse_week_range("Weeks 1-2"), term)
    assert resolution.week_starts == [date(2024, 1, 1), date(2024, 1, 8)]


def test_midweek_term_keeps_the_week_containing_the_term_end():
    term = make_term(start=date(2024, 1, 3), end=date(2024, 1, 15))
    resolution = resolve_weeks(parse_week_range("Weeks 1-3"), term)
    assert resolution.week_starts == [date(2024, 1, 1), date(2024, 1, 8), date(2024, 1, 15)]
    assert resolution.dropped == ()


def test_midweek_term_drops_weeks_starting_after_the_end():
    term = make_term(start=date(2024, 1, 3), end=date(2024, 1, 15))
    resolution = resolve_weeks(parse_week_range("Weeks 1-4"), term)
    assert [week.index for week in resolution.weeks] == [1, 2, 3]
    assert [(warning.week_index, warning.week_start) for warning in resolution.dropped] == [(4, date(2024, 1, 22))]


def test_unscoped_midweek_term_counts_every_touched_week():
    term = make_term(start=date(2024, 1, 3), end=date(2024, 1, 15))
    assert term_week_count(term) == 3
    resolution = resolve_weeks(None, term, sheet_name="Timetable")
    assert resolution.week_starts == [date(2024, 1, 1), date(2024, 1, 8), date(2024, 1, 15)]
    assert resolution.dropped == ()


def test_weeks_past_term_end_are_dropped_with_warning():
    term = make_term(start=date(2024, 1, 1), end=date(2024, 1, 21))
    resolution = resolve_weeks(parse_week_range("Weeks 2-5"), term)
    assert [week.index for week in resolution.weeks] == [2, 3]
    assert [warning.week_index for warning in resolution.dropped] == [4, 5]
    assert "after the term ends" in str(resolution.dropped[0])


def test_unscoped_sheet_covers_whole_term():
    term = make_term(start=date(2024, 1, 1), end=date(2024, 1, 31))
    assert term_week_count(term) == 5
    resolution = resolve_weeks(None, term, sheet_name="Sheet1")
    assert resolution.scoped is False
    assert [week.index for week in resolution.weeks] == [1, 2, 3, 4, 5]
    assert resolution.weeks[-1].start_date == date(2024, 1, 29)
