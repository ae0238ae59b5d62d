from datetime import date
import threading

import pytest

from campus_timetable.core.exceptions import VenueConflictError
from campus_timetable.services.directory import StaticVenueRegistry, VenueInfo
from campus_timetable.services.venue_conflicts import (
    Booking,
    BookingRequest,
    InMemoryBookingStore,
    KeyedLockRegistry,
    VenueConflictResolver,
    WeekScope,
    bookings_clash,
    times_overlap,
)

WEEK = date(2024, 1, 8)
VENUES = StaticVenueRegistry(
    [
        VenueInfo(id="hall", name="Main Hall", capacity=200),
        VenueInfo(id="room-a", name="Room A", capacity=30),
        VenueInfo(id="room-b", name="Room B", capacity=30, is_available=False),
    ]
)


def request(start, end, venue_id="room-a", week=WEEK, entry_id=None, day="Monday"):
    return BookingRequest(
        venue_id=venue_id,
        term="2024-S1",
        day_of_week=day,
        start_time=start,
        end_time=end,
        week_start_date=week,
        entry_id=entry_id,
    )


def test_back_to_back_windows_do_not_overlap():
    assert not times_overlap("10:00", "11:00", "11:00", "12:00")
    assert times_overlap("10:00", "11:00", "10:30", "11:30")


def test_clash_requires_same_venue_day_and_week():
    existing = request("10:00", "11:00")
    assert bookings_clash(existing, request("10:30", "11:30"))
    assert not bookings_clash(existing, request("10:30", "11:30", venue_id="hall"))
    assert not bookings_clash(existing, request("10:30", "11:30", day="Tuesday"))
    assert not bookings_clash(existing, request("10:30", "11:30", week=date(2024, 1, 15)))


def test_term_wide_booking_blocks_every_week():
    term_wide = request("10:00", "11:00", week=None)
    assert bookings_clash(term_wide, request("10:30", "11:30", week=date(2024, 2, 5)))


def test_reserve_rejects_overlap_and_accepts_adjacent_window():
    resolver = VenueConflictResolver(InMemoryBookingStore(), VENUES)
    resolver.assign(request("10:00", "11:00"))

    resolver.assign(request("11:00", "12:00"))
    with pytest.raises(VenueConflictError) as exc_info:
        resolver.assign(request("10:30", "11:30"))
    assert exc_info.value.status_code == 409
    assert len(exc_info.value.conflicts) == 2


def test_rebooking_an_entry_replaces_its_previous_booking():
    store = InMemoryBookingStore()
    resolver = VenueConflictResolver(store, VENUES)
    resolver.assign(request("10:00", "11:00", entry_id="entry-1"))
    resolver.assign(request("10:00", "11:00", venue_id="hall", entry_id="entry-1"))
    assert [booking.venue_id for booking in store.all()] == ["hall"]


def test_available_venues_excludes_busy_unavailable_and_small_venues():
    store = InMemoryBookingStore([Booking(**vars(request("09:00", "10:30", venue_id="hall")))])
    resolver = VenueConflictResolver(store, VENUES)
    scope = WeekScope(term="2024-S1", week_start=WEEK)

    assert resolver.available_venues("Monday", "10:00", "11:00", scope) == ["room-a"]
    assert resolver.available_venues("Monday", "10:30", "11:30", scope) == ["hall", "room-a"]
    assert resolver.available_venues("Monday", "10:30", "11:30", scope, min_capacity=50) == ["hall"]
    other_week = WeekScope(term="2024-S1", week_start=date(2024, 1, 15))
    assert resolver.available_venues("Monday", "10:00", "11:00", other_week) == ["hall", "room-a"]


def test_batch_conflicts_reports_clashes_within_the_batch_and_with_stored_bookings():
    store = InMemoryBookingStore([Booking(**vars(request("08:00", "09:00", venue_id="hall", entry_id="old")))])
    resolver = VenueConflictResolver(store, VENUES)

    conflicts = resolver.batch_conflicts(
        [
            request("09:00", "10:00"),
            request("09:30", "10:30"),
            request("08:30", "09:30", venue_id="hall"),
        ]
    )
    assert len(conflicts) == 2
    assert resolver.batch_conflicts([request("08:30", "09:30", venue_id="hall")], ignore_entry_ids={"old"}) == []


def test_concurrent_assignment_of_the_same_slot_has_one_winner():
    store = InMemoryBookingStore(locks=KeyedLockRegistry())
    resolver = VenueConflictResolver(store, VENUES)
    barrier = threading.Barrier(2)
    outcomes = []

    def attempt(entry_id):
        barrier.wait()
        try:
            resolver.assign(request("10:00", "11:00", entry_id=entry_id))
            outcomes.append("ok")
        except VenueConflictError:
            outcomes.append("conflict")

    threads = [threading.Thread(target=attempt, args=(f"entry-{n}",)) for n in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ["conflict", "ok"]
    assert len(store.all()) == 1
