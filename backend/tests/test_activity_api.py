import pytest

from campus_timetable.models.user import UserRole
from campus_timetable.services.audit import log_activity

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
TERM_FORM = {"term": "2024-S1", "startDate": "2024-01-01", "endDate": "2024-03-29"}


def upload(client, headers, data):
    response = client.post(
        "/api/timetable/upload",
        files={"timetable": ("timetable.xlsx", data, XLSX)},
        data=TERM_FORM,
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


def test_activity_log_is_scoped_to_the_hod_department(client, make_user, auth_headers, build_workbook):
    admin = make_user("admin@example.com", role=UserRole.admin, department=None)
    cs_hod = make_user("cs@example.com", role=UserRole.hod)
    physics_hod = make_user("phy@example.com", role=UserRole.hod, department="Physics")
    teacher = make_user("ann@example.com")

    assert client.post("/api/venues/", json={"name": "Room A"}, headers=auth_headers(admin)).status_code == 201
    cs_commit = upload(
        client,
        auth_headers(cs_hod),
        build_workbook({"Week 1": [["Math", "ann@example.com", "Monday", "09:00", "10:00", None]]}),
    )
    physics_commit = upload(
        client,
        auth_headers(physics_hod),
        build_workbook({"Week 1": [["Optics", "ann@example.com", "Tuesday", "09:00", "10:00", None]]}),
    )

    seen_by_cs = client.get("/api/activity/logs", params={"department": "Physics"}, headers=auth_headers(cs_hod))
    assert seen_by_cs.status_code == 200
    assert {(log["action"], log["department"]) for log in seen_by_cs.json()} == {
        ("venue.create", None),
        ("timetable.commit", "Computer Science"),
    }
    commit_log = next(log for log in seen_by_cs.json() if log["action"] == "timetable.commit")
    assert commit_log["targetId"] == cs_commit["generationId"]
    assert commit_log["actorId"] == cs_hod.id
    assert commit_log["details"]["created"] == 1

    physics_only = client.get(
        "/api/activity/logs",
        params={"department": "Physics", "action": "timetable.commit"},
        headers=auth_headers(admin),
    ).json()
    assert [log["targetId"] for log in physics_only] == [physics_commit["generationId"]]

    everything = client.get("/api/activity/logs", headers=auth_headers(admin)).json()
    assert len(everything) == 3

    assert client.get("/api/activity/logs", headers=auth_headers(teacher)).status_code == 403


def test_unknown_action_is_rejected(db_session):
    with pytest.raises(ValueError):
        log_activity(db_session, "timetable.publish", actor=None)
