"""Sheet week-range labels and their calendar weeks.

A sheet called "Weeks 1-4" applies its rows to weeks one to four of the
term; "Week 6" to the sixth week only. Week ``k`` starts on the Monday of the
week containing ``term.start_date + 7 * (k - 1)`` days.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
import logging
import re

from campus_timetable.core.exceptions import RangeError, RangeExhaustedWarning
from campus_timetable.schemas.timetable import TermWindow

logger = logging.getLogger(__name__)

_RANGE_PATTERN = re.compile(r"^\s*weeks?\s*(\d+)\s*(?:-|–|—|to)\s*(\d+)\s*$", re.IGNORECASE)
_SINGLE_PATTERN = re.compile(r"^\s*weeks?\s*(\d+)\s*$", re.IGNORECASE)


@dataclass(frozen=True)
class WeekRangeSpec:
    sheet_name: str
    start_week: int
    end_week: int

    @property
    def week_count(self) -> int:
        return self.end_week - self.start_week + 1


@dataclass(frozen=True)
class ResolvedWeek:
    index: int
    start_date: date

    @property
    def end_date(self) -> date:
        return self.start_date + timedelta(days=6)


@dataclass(frozen=True)
class WeekResolution:
    weeks: tuple[ResolvedWeek, ...]
    dropped: tuple[RangeExhaustedWarning, ...] = ()
    scoped: bool = True

    @property
    def week_starts(self) -> list[date]:
        return [week.start_date for week in self.weeks]


def parse_week_range(sheet_name: str) -> WeekRangeSpec | None:
    """Parse a sheet label; None when it names no week range at all."""
    match = _RANGE_PATTERN.match(sheet_name)
    if match:
        start, end = int(match.group(1)), int(match.group(2))
    else:
        match = _SINGLE_PATTERN.match(sheet_name)
        if not match:
            return None
        start = end = int(match.group(1))

    if start < 1:
        raise RangeError(sheet_name, "week numbers start at 1")
    if end < start:
        raise RangeError(sheet_name, f"range end {end} is before range start {start}")
    return WeekRangeSpec(sheet_name=sheet_name, start_week=start, end_week=end)


def week_monday(value: date) -> date:
    return value - timedelta(days=value.weekday())


def term_week_count(term: TermWindow) -> int:
    return (week_monday(term.end_date) - week_monday(term.start_date)).days // 7 + 1


def resolve_weeks(week_range: WeekRangeSpec | None, term: TermWindow, *, sheet_name: str = "") -> WeekResolution:
    """Concrete week-start dates for `week_range` within `term`.

    Without a range every week the term touches is covered. Weeks starting
    after the term end are dropped and reported, not raised.
    """
    if week_range is None:
        first, last = 1, term_week_count(term)
        scoped = False
    else:
        first, last = week_range.start_week, week_range.end_week
        sheet_name = sheet_name or week_range.sheet_name
        scoped = True

    weeks: list[ResolvedWeek] = []
    dropped: list[RangeExhaustedWarning] = []
    for index in range(first, last + 1):
        week_start = week_monday(term.start_date + timedelta(days=7 * (index - 1)))
        if week_start > term.end_date:
            dropped.append(RangeExhaustedWarning(sheet_name, index, week_start))
            continue
        weeks.append(ResolvedWeek(index=index, start_date=week_start))

    if dropped:
        logger.warning(
            "WEEKS OUTSIDE TERM | sheet=%s | term=%s | dropped=%s",
            sheet_name,
            term.term,
            [warning.week_index for warning in dropped],
        )
    return WeekResolution(weeks=tuple(weeks), dropped=tuple(dropped), scoped=scoped)
