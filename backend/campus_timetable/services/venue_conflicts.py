"""Venue availability and double-booking prevention.

Bookings are half-open ``[start, end)`` intervals on a weekday of one week
(or of every week of a term, when ``week_start_date`` is None). Two
bookings of the same venue clash when their weeks coincide and
``a.start < b.end and b.start < a.end``; back-to-back bookings do not.

Reservation always re-checks for clashes while holding the venue's lock,
so an "available" answer can never be turned into a double booking by a
concurrent caller.
"""

from __future__ import annotations

from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import date
import logging
from threading import Lock
from typing import Iterable, Iterator, Protocol
import uuid

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from campus_timetable.core.exceptions import VenueConflictError
from campus_timetable.models.venue import Venue
from campus_timetable.models.venue_booking import VenueBooking
from campus_timetable.schemas.timetable import parse_time_to_minutes
from campus_timetable.services.directory import VenueRegistry

logger = logging.getLogger(__name__)


def intervals_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    return start_a < end_b and start_b < end_a


def times_overlap(start_a: str, end_a: str, start_b: str, end_b: str) -> bool:
    return intervals_overlap(
        parse_time_to_minutes(start_a),
        parse_time_to_minutes(end_a),
        parse_time_to_minutes(start_b),
        parse_time_to_minutes(end_b),
    )


@dataclass(frozen=True)
class WeekScope:
    term: str
    week_start: date | None = None

    def covers(self, week_start: date | None) -> bool:
        if self.week_start is None or week_start is None:
            return True
        return self.week_start == week_start


@dataclass(frozen=True)
class BookingRequest:
    venue_id: str
    term: str
    day_of_week: str
    start_time: str
    end_time: str
    week_start_date: date | None = None
    entry_id: str | None = None

    @property
    def scope(self) -> WeekScope:
        return WeekScope(term=self.term, week_start=self.week_start_date)


@dataclass(frozen=True)
class Booking(BookingRequest):
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def as_dict(self) -> dict:
        return {
            "bookingId": self.id,
            "venueId": self.venue_id,
            "term": self.term,
            "dayOfWeek": self.day_of_week,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "weekStartDate": self.week_start_date.isoformat() if self.week_start_date else None,
            "entryId": self.entry_id,
        }


def bookings_clash(existing: BookingRequest, candidate: BookingRequest) -> bool:
    if existing.venue_id != candidate.venue_id or existing.term != candidate.term:
        return False
    if existing.day_of_week != candidate.day_of_week:
        return False
    if not candidate.scope.covers(existing.week_start_date):
        return False
    if existing.entry_id is not None and existing.entry_id == candidate.entry_id:
        return False
    return times_overlap(existing.start_time, existing.end_time, candidate.start_time, candidate.end_time)


class KeyedLockRegistry:
    """Process-wide mutual exclusion per key (a venue id, a department/term)."""

    def __init__(self) -> None:
        self._locks: dict[str, Lock] = defaultdict(Lock)
        self._guard = Lock()

    def _lock_for(self, key: str) -> Lock:
        with self._guard:
            return self._locks[key]

    @contextmanager
    def hold(self, keys: Iterable[str]) -> Iterator[None]:
        # Sorted acquisition keeps multi-key holders deadlock free.
        locks = [self._lock_for(key) for key in sorted(set(keys))]
        acquired: list[Lock] = []
        try:
            for lock in locks:
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


venue_locks = KeyedLockRegistry()
department_locks = KeyedLockRegistry()


class BookingStore(Protocol):
    def query(self, scope: WeekScope, day_of_week: str, venue_ids: Iterable[str] | None = None) -> list[Booking]: ...

    def reserve(self, request: BookingRequest) -> Booking: ...

    def release(self, booking_id: str) -> None: ...


def _conflict_error(request: BookingRequest, clashes: list[Booking], venue_name: str | None = None) -> VenueConflictError:
    first = clashes[0]
    label = venue_name or request.venue_id
    return VenueConflictError(
        f'Booking conflict: venue "{label}" is already booked from {first.start_time} '
        f"to {first.end_time} on {request.day_of_week}.",
        conflicts=[booking.as_dict() for booking in clashes],
    )


class InMemoryBookingStore:
    def __init__(self, bookings: Iterable[Booking] = (), *, locks: KeyedLockRegistry | None = None) -> None:
        self._bookings: dict[str, Booking] = {booking.id: booking for booking in bookings}
        self._locks = locks or KeyedLockRegistry()
        self._data_lock = Lock()

    def _snapshot(self) -> list[Booking]:
        with self._data_lock:
            return list(self._bookings.values())

    def query(self, scope: WeekScope, day_of_week: str, venue_ids: Iterable[str] | None = None) -> list[Booking]:
        wanted = set(venue_ids) if venue_ids is not None else None
        return [
            booking
            for booking in self._snapshot()
            if booking.term == scope.term
            and booking.day_of_week == day_of_week
            and scope.covers(booking.week_start_date)
            and (wanted is None or booking.venue_id in wanted)
        ]

    def reserve(self, request: BookingRequest) -> Booking:
        with self._locks.hold([request.venue_id]):
            clashes = [
                booking
                for booking in self.query(request.scope, request.day_of_week, [request.venue_id])
                if bookings_clash(booking, request)
            ]
            if clashes:
                raise _conflict_error(request, clashes)
            booking = Booking(**{name: getattr(request, name) for name in BookingRequest.__dataclass_fields__})
            with self._data_lock:
                if request.entry_id is not None:
                    # An entry holds at most one venue; the new booking supersedes the old.
                    for existing_id in [b.id for b in self._bookings.values() if b.entry_id == request.entry_id]:
                        del self._bookings[existing_id]
                self._bookings[booking.id] = booking
            return booking

    def release(self, booking_id: str) -> None:
        with self._data_lock:
            self._bookings.pop(booking_id, None)

    def all(self) -> list[Booking]:
        return self._snapshot()


def _booking_from_row(row: VenueBooking) -> Booking:
    return Booking(
        id=row.id,
        venue_id=row.venue_id,
        term=row.term,
        day_of_week=row.day_of_week,
        start_time=row.start_time,
        end_time=row.end_time,
        week_start_date=row.week_start_date,
        entry_id=row.entry_id,
    )


class SqlBookingStore:
    """Booking store over the venue_bookings table.

    `reserve` commits the caller's session while the venue lock is held, so
    changes the caller staged beforehand (the entry's venue) land in the same
    transaction as the booking.
    """

    def __init__(self, db: Session, *, locks: KeyedLockRegistry | None = None) -> None:
        self._db = db
        self._locks = locks or venue_locks

    def query(self, scope: WeekScope, day_of_week: str, venue_ids: Iterable[str] | None = None) -> list[Booking]:
        statement = select(VenueBooking).where(
            VenueBooking.term == scope.term,
            VenueBooking.day_of_week == day_of_week,
        )
        if scope.week_start is not None:
            statement = statement.where(
                or_(VenueBooking.week_start_date == scope.week_start, VenueBooking.week_start_date.is_(None))
            )
        if venue_ids is not None:
            statement = statement.where(VenueBooking.venue_id.in_(list(venue_ids)))
        return [_booking_from_row(row) for row in self._db.execute(statement).scalars()]

    def reserve(self, request: BookingRequest) -> Booking:
        with self._locks.hold([request.venue_id]):
            venue = self._db.execute(
                select(Venue).where(Venue.id == request.venue_id).with_for_update()
            ).scalar_one_or_none()
            clashes = [
                booking
                for booking in self.query(request.scope, request.day_of_week, [request.venue_id])
                if bookings_clash(booking, request)
            ]
            if clashes:
                self._db.rollback()
                raise _conflict_error(request, clashes, venue.name if venue is not None else None)

            if request.entry_id is not None:
                for stale in self._db.execute(
                    select(VenueBooking).where(VenueBooking.entry_id == request.entry_id)
                ).scalars():
                    self._db.delete(stale)
            row = VenueBooking(
                venue_id=request.venue_id,
                term=request.term,
                day_of_week=request.day_of_week,
                start_time=request.start_time,
                end_time=request.end_time,
                week_start_date=request.week_start_date,
                entry_id=request.entry_id,
            )
            self._db.add(row)
            self._db.commit()
            return _booking_from_row(row)

    def release(self, booking_id: str) -> None:
        row = self._db.get(VenueBooking, booking_id)
        if row is not None:
            self._db.delete(row)
            self._db.commit()


class VenueConflictResolver:
    def __init__(self, store: BookingStore, venues: VenueRegistry) -> None:
        self.store = store
        self.venues = venues

    def available_venues(
        self,
        day_of_week: str,
        start_time: str,
        end_time: str,
        scope: WeekScope,
        *,
        min_capacity: int = 0,
    ) -> list[str]:
        """Ids of venues free for the whole window in `scope`, in registry order."""
        probe_start = parse_time_to_minutes(start_time)
        probe_end = parse_time_to_minutes(end_time)
        busy = {
            booking.venue_id
            for booking in self.store.query(scope, day_of_week)
            if intervals_overlap(
                parse_time_to_minutes(booking.start_time),
                parse_time_to_minutes(booking.end_time),
                probe_start,
                probe_end,
            )
        }
        return [
            venue.id
            for venue in self.venues.list_venues()
            if venue.is_available and venue.capacity >= min_capacity and venue.id not in busy
        ]

    def assign(self, request: BookingRequest) -> Booking:
        booking = self.store.reserve(request)
        logger.info(
            "VENUE RESERVED | venue_id=%s | day=%s | window=%s-%s | week=%s | entry_id=%s",
            request.venue_id,
            request.day_of_week,
            request.start_time,
            request.end_time,
            request.week_start_date,
            request.entry_id,
        )
        return booking

    def batch_conflicts(
        self,
        requests: list[BookingRequest],
        *,
        ignore_entry_ids: set[str] | frozenset[str] = frozenset(),
    ) -> list[dict]:
        """Clashes among `requests` and between them and stored bookings.

        Stored bookings owned by `ignore_entry_ids` are treated as already
        released (a full replace of those entries is in progress).
        """
        conflicts: list[dict] = []
        by_slot: dict[tuple[str, str, str], list[BookingRequest]] = defaultdict(list)
        for request in requests:
            by_slot[(request.term, request.day_of_week, request.venue_id)].append(request)

        for (term, day, venue_id), group in by_slot.items():
            stored = [
                booking
                for booking in self.store.query(WeekScope(term=term), day, [venue_id])
                if booking.entry_id is None or booking.entry_id not in ignore_entry_ids
            ]
            for index, request in enumerate(group):
                probe = replace(request, entry_id=None)
                for booking in stored:
                    if bookings_clash(booking, probe):
                        conflicts.append({"request": _request_dict(request), "existing": booking.as_dict()})
                for other in group[index + 1 :]:
                    if bookings_clash(replace(other, entry_id=None), probe):
                        conflicts.append({"request": _request_dict(request), "existing": _request_dict(other)})
        return conflicts


def _request_dict(request: BookingRequest) -> dict:
    return {
        "venueId": request.venue_id,
        "term": request.term,
        "dayOfWeek": request.day_of_week,
        "startTime": request.start_time,
        "endTime": request.end_time,
        "weekStartDate": request.week_start_date.isoformat() if request.week_start_date else None,
        "entryId": request.entry_id,
    }
