"""Seed demo accounts, venues and a committed timetable for local testing.

Run:
  PYTHONPATH=backend python scripts/seed_demo_data.py

There is no login endpoint; the script prints a bearer token per account.
"""

from __future__ import annotations

from datetime import date, timedelta
from io import BytesIO
import os
from typing import Iterable

import openpyxl
from sqlalchemy import select

from campus_timetable.core.security import create_access_token
from campus_timetable.db.bootstrap import ensure_schema
from campus_timetable.db.session import SessionLocal
from campus_timetable.models.user import User, UserRole
from campus_timetable.models.venue import Venue
from campus_timetable.schemas.timetable import TermWindow
from campus_timetable.services.timetable_commit import commit_timetable
from campus_timetable.services.week_ranges import week_monday
from campus_timetable.services.workbook_template import TEMPLATE_HEADERS

DEPARTMENT = os.getenv("DEMO_DEPARTMENT", "Computer Science")
TERM_NAME = os.getenv("DEMO_TERM", "Demo Term")

DEMO_ACCOUNTS = {
    "admin": {"name": "Demo Admin", "email": "admin.demo@example.com", "role": UserRole.admin, "department": None},
    "hod": {"name": "Demo Head", "email": "hod.demo@example.com", "role": UserRole.hod, "department": DEPARTMENT},
    "teacher_1": {
        "name": "Demo Teacher One",
        "email": "teacher1.demo@example.com",
        "role": UserRole.teacher,
        "department": DEPARTMENT,
    },
    "teacher_2": {
        "name": "Demo Teacher Two",
        "email": "teacher2.demo@example.com",
        "role": UserRole.teacher,
        "department": DEPARTMENT,
    },
}

DEMO_VENUES = (
    {"name": "A101", "location": "Main Block", "capacity": 70},
    {"name": "A102", "location": "Main Block", "capacity": 70},
    {"name": "Lab 1", "location": "Science Block", "capacity": 30},
)

DEMO_SHEETS = {
    "Weeks 1-6": [
        ("Algorithms", "teacher1.demo@example.com", "Monday", "09:00", "10:00", "A101"),
        ("Databases", "teacher2.demo@example.com", "Tuesday", "11:00", "12:30", "A102"),
        ("Databases", "teacher2.demo@example.com", "Thursday", "11:00", "12:30", "A102"),
    ],
    "Weeks 7-12": [
        ("Algorithms", "teacher1.demo@example.com", "Monday", "09:00", "10:00", "A101"),
        ("Networks Lab", "teacher1.demo@example.com", "Wednesday", "14:00", "16:00", "Lab 1"),
    ],
}


def _upsert_user(*, name: str, email: str, role: UserRole, department: str | None) -> User:
    with SessionLocal() as session:
        existing = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
        if existing is None:
            existing = User(name=name, email=email, role=role, department=department, is_active=True)
            session.add(existing)
        else:
            existing.name = name
            existing.role = role
            existing.department = department
            existing.is_active = True
        session.commit()
        session.refresh(existing)
        return existing


def _upsert_venues() -> None:
    with SessionLocal() as session:
        for item in DEMO_VENUES:
            existing = session.execute(select(Venue).where(Venue.name == item["name"])).scalar_one_or_none()
            if existing is None:
                session.add(Venue(**item))
            else:
                existing.capacity = item["capacity"]
                existing.location = item["location"]
                existing.is_available = True
        session.commit()


def _demo_workbook() -> bytes:
    workbook = openpyxl.Workbook()
    workbook.remove(workbook.active)
    for name, rows in DEMO_SHEETS.items():
        sheet = workbook.create_sheet(title=name)
        sheet.append(list(TEMPLATE_HEADERS))
        for row in rows:
            sheet.append(list(row))
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def _demo_term() -> TermWindow:
    start = week_monday(date.today())
    return TermWindow(term=TERM_NAME, start_date=start, end_date=start + timedelta(weeks=12, days=-3))


def _print_accounts(items: Iterable[tuple[str, User]]) -> None:
    print("\nDemo accounts ready (Authorization: Bearer <token>):")
    for label, user in items:
        print(f"  - {label}: {user.email} | role={user.role.value}")
        print(f"    {create_access_token(user.id)}")


def main() -> None:
    ensure_schema()
    created_users: dict[str, User] = {}
    for key, item in DEMO_ACCOUNTS.items():
        created_users[key] = _upsert_user(**item)
    _upsert_venues()

    term = _demo_term()
    with SessionLocal() as session:
        hod = session.get(User, created_users["hod"].id)
        result = commit_timetable(session, _demo_workbook(), DEPARTMENT, term, user=hod)
    print(
        f"Committed {result.created_entry_count} entries for {DEPARTMENT} / {term.term} "
        f"({term.start_date} to {term.end_date}); replaced {result.replaced_entry_count}."
    )
    for warning in result.warnings:
        print(f"  warning: {warning}")

    _print_accounts(created_users.items())


if __name__ == "__main__":
    main()
