import os
import tempfile
from io import BytesIO

# The app's own engine (startup schema bootstrap, readiness probe) must never touch a developer database.
os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite+pysqlite:///{os.path.join(tempfile.mkdtemp(prefix='campus-timetable-'), 'test.db')}",
)

import openpyxl
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from campus_timetable.api.deps import get_db
from campus_timetable.core.security import create_access_token
from campus_timetable.db.base import Base
from campus_timetable.main import app
from campus_timetable.models.user import User, UserRole
from campus_timetable.models.venue import Venue

HEADER = ["subject", "teacherEmail", "dayOfWeek", "startTime", "endTime", "venue"]


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture()
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db_session):
    def _make_user(email, role=UserRole.teacher, department="Computer Science", name=None):
        user = User(
            name=name or email.split("@")[0].title(),
            email=email,
            role=role,
            department=department,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def make_venue(db_session):
    def _make_venue(name, capacity=40, is_available=True, location=None):
        venue = Venue(name=name, capacity=capacity, is_available=is_available, location=location)
        db_session.add(venue)
        db_session.commit()
        db_session.refresh(venue)
        return venue

    return _make_venue


@pytest.fixture()
def auth_headers():
    def _auth_headers(user):
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _auth_headers


@pytest.fixture()
def build_workbook():
    """Returns a builder: {sheet name: [rows]} -> .xlsx bytes, header row added."""

    def _build(sheets, header=HEADER):
        workbook = openpyxl.Workbook()
        workbook.remove(workbook.active)
        for name, rows in sheets.items():
            sheet = workbook.create_sheet(title=name)
            if header is not None:
                sheet.append(list(header))
            for row in rows:
                sheet.append(list(row))
        buffer = BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()

    return _build
