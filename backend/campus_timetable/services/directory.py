"""Lookups the ingestion pipeline needs from the rest of the system.

The pipeline only sees these small interfaces. The SQL-backed versions read
the users, venues and classes tables; the static versions back tests and
offline previews.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from campus_timetable.models.school_class import SchoolClass
from campus_timetable.models.user import User, UserRole
from campus_timetable.models.venue import Venue
from campus_timetable.schemas.timetable import normalize_subject

TEACHING_ROLES = (UserRole.teacher, UserRole.hod)


@dataclass(frozen=True)
class VenueInfo:
    id: str
    name: str
    capacity: int = 0
    is_available: bool = True


class TeacherDirectory(Protocol):
    def lookup_teacher(self, email: str) -> str | None: ...


class VenueRegistry(Protocol):
    def lookup_venue(self, name: str) -> str | None: ...

    def list_venues(self) -> list[VenueInfo]: ...


class ClassRegistry(Protocol):
    def lookup_class(self, subject: str) -> str | None: ...


def _email_key(email: str) -> str:
    return email.strip().lower()


def _name_key(name: str) -> str:
    return normalize_subject(name).lower()


class StaticTeacherDirectory:
    def __init__(self, teachers: dict[str, str] | None = None) -> None:
        self._teachers = {_email_key(email): teacher_id for email, teacher_id in (teachers or {}).items()}

    def lookup_teacher(self, email: str) -> str | None:
        return self._teachers.get(_email_key(email))


class StaticVenueRegistry:
    def __init__(self, venues: Iterable[VenueInfo] = ()) -> None:
        self._venues = list(venues)
        self._by_name = {_name_key(venue.name): venue.id for venue in self._venues}

    def lookup_venue(self, name: str) -> str | None:
        return self._by_name.get(_name_key(name))

    def list_venues(self) -> list[VenueInfo]:
        return list(self._venues)


class StaticClassRegistry:
    def __init__(self, classes: dict[str, str] | None = None) -> None:
        self._classes = {_name_key(subject): class_id for subject, class_id in (classes or {}).items()}

    def lookup_class(self, subject: str) -> str | None:
        return self._classes.get(_name_key(subject))


class SqlTeacherDirectory:
    def __init__(self, db: Session) -> None:
        self._db = db
        self._cache: dict[str, str | None] = {}

    def lookup_teacher(self, email: str) -> str | None:
        key = _email_key(email)
        if key not in self._cache:
            self._cache[key] = self._db.execute(
                select(User.id).where(
                    func.lower(User.email) == key,
                    User.role.in_(TEACHING_ROLES),
                    User.is_active.is_(True),
                )
            ).scalar_one_or_none()
        return self._cache[key]


class SqlVenueRegistry:
    def __init__(self, db: Session) -> None:
        self._db = db
        self._venues: list[VenueInfo] | None = None

    def list_venues(self) -> list[VenueInfo]:
        if self._venues is None:
            rows = self._db.execute(select(Venue).order_by(Venue.name)).scalars()
            self._venues = [
                VenueInfo(id=row.id, name=row.name, capacity=row.capacity, is_available=row.is_available)
                for row in rows
            ]
        return list(self._venues)

    def lookup_venue(self, name: str) -> str | None:
        key = _name_key(name)
        for venue in self.list_venues():
            if _name_key(venue.name) == key:
                return venue.id
        return None


class SqlClassRegistry:
    def __init__(self, db: Session, department: str) -> None:
        self._db = db
        self._department = department

    def lookup_class(self, subject: str) -> str | None:
        return self._db.execute(
            select(SchoolClass.id).where(
                SchoolClass.department == self._department,
                func.lower(SchoolClass.name) == _name_key(subject),
            )
        ).scalar_one_or_none()
