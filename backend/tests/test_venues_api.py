from campus_timetable.models.user import UserRole

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
TERM_FORM = {"term": "2024-S1", "startDate": "2024-01-01", "endDate": "2024-03-29"}


def commit(client, headers, data):
    response = client.post(
        "/api/timetable/upload",
        files={"timetable": ("timetable.xlsx", data, XLSX)},
        data=TERM_FORM,
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


def test_venue_crud_is_admin_only(client, make_user, auth_headers):
    admin = make_user("admin@example.com", role=UserRole.admin, department=None)
    hod = make_user("hod@example.com", role=UserRole.hod)

    created = client.post(
        "/api/venues/",
        json={"name": "Room A", "capacity": 40, "location": "Block 1"},
        headers=auth_headers(admin),
    )
    assert created.status_code == 201
    venue = created.json()
    assert venue["isAvailable"] is True

    duplicate = client.post("/api/venues/", json={"name": "Room A"}, headers=auth_headers(admin))
    assert duplicate.status_code == 409

    forbidden = client.post("/api/venues/", json={"name": "Room B"}, headers=auth_headers(hod))
    assert forbidden.status_code == 403

    updated = client.put(
        f"/api/venues/{venue['id']}",
        json={"capacity": 60, "isAvailable": False},
        headers=auth_headers(admin),
    )
    assert updated.status_code == 200
    assert (updated.json()["capacity"], updated.json()["isAvailable"]) == (60, False)

    listed = client.get("/api/venues/", headers=auth_headers(hod))
    assert [item["name"] for item in listed.json()] == ["Room A"]

    deleted = client.delete(f"/api/venues/{venue['id']}", headers=auth_headers(admin))
    assert deleted.status_code == 200
    assert client.delete(f"/api/venues/{venue['id']}", headers=auth_headers(admin)).status_code == 404


def test_available_venues_respect_bookings(client, make_user, make_venue, auth_headers, build_workbook):
    hod = make_user("hod@example.com", role=UserRole.hod)
    make_venue("Room A")
    make_venue("Room B")
    commit(
        client,
        auth_headers(hod),
        build_workbook({"Week 1": [["Math", "hod@example.com", "Monday", "09:00", "10:00", "Room A"]]}),
    )

    def available(**params):
        query = {"dayOfWeek": "Monday", "term": "2024-S1", **params}
        response = client.get("/api/venues/available", params=query, headers=auth_headers(hod))
        assert response.status_code == 200
        return [item["name"] for item in response.json()]

    assert available(startTime="09:30", endTime="10:30", weekStart="2024-01-01") == ["Room B"]
    assert available(startTime="10:00", endTime="11:00", weekStart="2024-01-01") == ["Room A", "Room B"]
    assert available(startTime="09:30", endTime="10:30", weekStart="2024-01-08") == ["Room A", "Room B"]


def test_available_venues_validates_window(client, make_user, auth_headers):
    hod = make_user("hod@example.com", role=UserRole.hod)
    response = client.get(
        "/api/venues/available",
        params={"dayOfWeek": "Monday", "startTime": "11:00", "endTime": "10:00", "term": "2024-S1"},
        headers=auth_headers(hod),
    )
    assert response.status_code == 422


def test_assign_venue_and_conflict_suggestions(client, make_user, make_venue, auth_headers, build_workbook):
    hod = make_user("hod@example.com", role=UserRole.hod)
    room_a = make_venue("Room A")
    room_b = make_venue("Room B")
    make_venue("Closet", capacity=5, is_available=False)
    commit(
        client,
        auth_headers(hod),
        build_workbook(
            {
                "Week 1": [
                    ["Math", "hod@example.com", "Monday", "09:00", "10:00", "Room A"],
                    ["Art", "hod@example.com", "Monday", "09:30", "10:30", None],
                ]
            }
        ),
    )
    entries = client.get("/api/timetable/", headers=auth_headers(hod)).json()
    art = next(entry for entry in entries if entry["subject"] == "Art")

    conflict = client.post(
        "/api/venues/assign",
        json={"timetableId": art["id"], "venueId": room_a.id},
        headers=auth_headers(hod),
    )
    assert conflict.status_code == 409
    details = conflict.json()["details"]
    assert details["conflicts"][0]["startTime"] == "09:00"
    assert [item["name"] for item in details["suggestions"]] == ["Room B"]

    assigned = client.post(
        "/api/venues/assign",
        json={"timetableId": art["id"], "venueId": room_b.id},
        headers=auth_headers(hod),
    )
    assert assigned.status_code == 200
    assert assigned.json()["venueId"] == room_b.id

    reassigned = client.post(
        "/api/venues/assign",
        json={"timetableId": art["id"], "venueId": room_b.id},
        headers=auth_headers(hod),
    )
    assert reassigned.status_code == 200


def test_assign_unknown_entry_is_not_found(client, make_user, make_venue, auth_headers):
    hod = make_user("hod@example.com", role=UserRole.hod)
    room = make_venue("Room A")
    response = client.post(
        "/api/venues/assign",
        json={"timetableId": "missing", "venueId": room.id},
        headers=auth_headers(hod),
    )
    assert response.status_code == 404


def test_venue_with_bookings_cannot_be_deleted(client, make_user, make_venue, auth_headers, build_workbook):
    admin = make_user("admin@example.com", role=UserRole.admin, department="Computer Science")
    room = make_venue("Room A")
    commit(
        client,
        auth_headers(admin),
        build_workbook({"Week 1": [["Math", "admin@example.com", "Monday", "09:00", "10:00", "Room A"]]}),
    )
    response = client.delete(f"/api/venues/{room.id}", headers=auth_headers(admin))
    assert response.status_code == 409
