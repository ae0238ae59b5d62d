"""Starter workbook offered to department heads before an upload.

Week sheets carry only the header row. Sample rows and guidance live on a
trailing "Instructions" sheet, which the parser never reads as schedule data.
"""

from __future__ import annotations

from io import BytesIO

import openpyxl
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.datavalidation import DataValidation

from campus_timetable.schemas.timetable import DAY_ORDER

TEMPLATE_HEADERS = ("subject", "teacherEmail", "dayOfWeek", "startTime", "endTime", "venue")
TEMPLATE_WIDTHS = (28, 30, 14, 12, 12, 18)
INSTRUCTIONS_SHEET = "Instructions"

EXAMPLE_ROWS = (
    ("Mathematics", "teacher@example.com", "Monday", "09:00", "10:00", "Room A"),
    ("Physics", "teacher@example.com", "Wednesday", "11:00", "12:30", ""),
)

GUIDANCE = (
    'Name each sheet after the weeks it covers: "Week 3" or "Weeks 1-4".',
    "Week 1 is the week containing the term start date.",
    "Times are 24-hour HH:MM; the end time must be after the start time.",
    "teacherEmail must match a registered teacher; venue is optional.",
    "Rows on this sheet are examples only and are never imported.",
)

_HEADER_FONT = Font(bold=True, color="FFFFFF", size=11)
_HEADER_FILL = PatternFill("solid", fgColor="2E6DA4")
_THIN = Side(style="thin", color="BBBBBB")
_BORDER = Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN)


def _write_header(sheet, row: int = 1) -> None:
    for column, (header, width) in enumerate(zip(TEMPLATE_HEADERS, TEMPLATE_WIDTHS), start=1):
        cell = sheet.cell(row=row, column=column, value=header)
        cell.font = _HEADER_FONT
        cell.fill = _HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center")
        cell.border = _BORDER
        sheet.column_dimensions[get_column_letter(column)].width = width


def _write_instructions(sheet) -> None:
    sheet.cell(row=1, column=1, value="How to fill in this workbook").font = Font(bold=True, size=13)
    for offset, line in enumerate(GUIDANCE, start=2):
        sheet.cell(row=offset, column=1, value=line)

    header_row = len(GUIDANCE) + 3
    _write_header(sheet, row=header_row)
    example_font = Font(italic=True, color="888888")
    for row_index, values in enumerate(EXAMPLE_ROWS, start=header_row + 1):
        for column, value in enumerate(values, start=1):
            cell = sheet.cell(row=row_index, column=column, value=value or None)
            cell.font = example_font
            cell.border = _BORDER


def build_template(sheet_names: tuple[str, ...] = ("Weeks 1-4", "Week 5")) -> bytes:
    workbook = openpyxl.Workbook()

    for position, name in enumerate(sheet_names):
        sheet = workbook.active if position == 0 else workbook.create_sheet()
        sheet.title = name
        _write_header(sheet)

        day_validation = DataValidation(
            type="list",
            formula1=f'"{",".join(DAY_ORDER)}"',
            allow_blank=True,
            showErrorMessage=True,
            errorTitle="Invalid day",
            error="Pick a day from Monday to Sunday.",
        )
        sheet.add_data_validation(day_validation)
        day_validation.add("C2:C500")
        sheet.freeze_panes = "A2"

    _write_instructions(workbook.create_sheet(INSTRUCTIONS_SHEET))

    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
