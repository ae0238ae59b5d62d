from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable

from campus_timetable.schemas.timetable import DAY_ORDER
from campus_timetable.services.directory import ClassRegistry
from campus_timetable.services.row_validator import ValidatedRow
from campus_timetable.services.week_ranges import WeekResolution


@dataclass(frozen=True)
class ValidatedSheet:
    name: str
    resolution: WeekResolution
    rows: tuple[ValidatedRow, ...]


@dataclass(frozen=True)
class EntryDraft:
    """One dated class meeting, ready to be persisted as a timetable entry."""

    sheet_name: str
    row_number: int
    subject: str
    class_id: str | None
    teacher_id: str | None
    teacher_email: str
    day_of_week: str
    start_time: str
    end_time: str
    venue_id: str | None
    week_index: int
    week_start_date: date

    @property
    def week_end_date(self) -> date:
        return self.week_start_date + timedelta(days=6)

    @property
    def meeting_date(self) -> date:
        return self.week_start_date + timedelta(days=DAY_ORDER.index(self.day_of_week))


def expand_rows(sheets: Iterable[ValidatedSheet], *, classes: ClassRegistry | None = None) -> list[EntryDraft]:
    """Cross-join each sheet's usable rows with its resolved weeks.

    Order is sheet, then row, then ascending week. Error rows produce
    nothing.
    """
    drafts: list[EntryDraft] = []
    for sheet in sheets:
        weeks = sorted(sheet.resolution.weeks, key=lambda week: week.index)
        for validated in sheet.rows:
            if validated.is_error:
                continue
            row = validated.row
            class_id = classes.lookup_class(row.subject) if classes is not None else None
            for week in weeks:
                drafts.append(
                    EntryDraft(
                        sheet_name=sheet.name,
                        row_number=row.row_number,
                        subject=row.subject,
                        class_id=class_id,
                        teacher_id=validated.teacher_id,
                        teacher_email=row.teacher_email,
                        day_of_week=validated.day_of_week,
                        start_time=validated.start_time,
                        end_time=validated.end_time,
                        venue_id=validated.venue_id,
                        week_index=week.index,
                        week_start_date=week.start_date,
                    )
                )
    return drafts
