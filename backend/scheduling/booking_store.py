"""Booking queries used by the availability and capacity calculations."""

from datetime import date

from sqlalchemy import func
from sqlalchemy.orm import Session

from backend.models.booking import ACTIVE_BOOKING_STATUSES, Booking


class BookingStore:
    """Read-only view of active bookings backed by a SQLAlchemy session."""

    def __init__(self, db: Session, statuses: tuple[str, ...] = ACTIVE_BOOKING_STATUSES):
        self.db = db
        self.statuses = statuses

    def count_active_between(self, start: date, end: date) -> int:
        count = self.db.query(func.count(Booking.id)).filter(
            Booking.status.in_(self.statuses),
            Booking.scheduled_date >= start,
            Booking.scheduled_date <= end,
        ).scalar()
        return count or 0

    def is_slot_occupied(self, day: date, slot_time: str) -> bool:
        booking_id = self.db.query(Booking.id).filter(
            Booking.status.in_(self.statuses),
            Booking.scheduled_date == day,
            Booking.scheduled_time == slot_time,
        ).first()
        return booking_id is not None

    def occupied_times_by_date(self, start: date, end: date) -> dict[date, set[str]]:
        rows = self.db.query(Booking.scheduled_date, Booking.scheduled_time).filter(
            Booking.status.in_(self.statuses),
            Booking.scheduled_date >= start,
            Booking.scheduled_date <= end,
        ).all()

        occupied: dict[date, set[str]] = {}
        for scheduled_date, scheduled_time in rows:
            occupied.setdefault(scheduled_date, set()).add(scheduled_time)
        return occupied


class PrefetchedBookingStore:
    """Answers occupancy questions from an already-loaded date range."""

    def __init__(self, occupied: dict[date, set[str]]):
        self.occupied = occupied

    def is_slot_occupied(self, day: date, slot_time: str) -> bool:
        return slot_time in self.occupied.get(day, set())
