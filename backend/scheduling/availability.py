from datetime import date, datetime, timedelta
from typing import Iterator, Protocol

from backend.scheduling.settings import CalendarSettings


class SlotOccupancy(Protocol):
    def is_slot_occupied(self, day: date, slot_time: str) -> bool:
        ...


def day_of_week(day: date) -> int:
    """Weekday number with 0 = Sunday through 6 = Saturday."""
    return (day.weekday() + 1) % 7


def is_working_day(day: date, settings: CalendarSettings) -> bool:
    return day_of_week(day) in settings.working_days


def _to_minutes(value: str) -> int:
    hours, minutes = value.split(':')
    return int(hours) * 60 + int(minutes)


def _format_minutes(total_minutes: int) -> str:
    return f'{total_minutes // 60:02d}:{total_minutes % 60:02d}'


def iterate_slot_times(settings: CalendarSettings) -> Iterator[str]:
    """Yield slot start times on the grid defined by the working window.

    The end of the window is exclusive and a trailing slot that would run
    past it is dropped.
    """
    start_minutes = _to_minutes(settings.start_time)
    end_minutes = _to_minutes(settings.end_time)
    step = settings.slot_duration + settings.slot_buffer_time

    current = start_minutes
    while current < end_minutes:
        if current + settings.slot_duration > end_minutes:
            break
        yield _format_minutes(current)
        current += step


def calculate_available_slots(day: date, settings: CalendarSettings, store: SlotOccupancy) -> list[str]:
    """Return the unoccupied ``HH:MM`` slots for ``day``.

    Occupancy is an exact match on date and time string, so a booking that
    does not sit on the slot grid does not block any slot.
    """
    if not is_working_day(day, settings):
        return []

    return [
        slot_time
        for slot_time in iterate_slot_times(settings)
        if not store.is_slot_occupied(day, slot_time)
    ]


def earliest_bookable_moment(settings: CalendarSettings, now: datetime) -> datetime:
    if settings.advance_booking_unit == 'hours':
        return now + timedelta(hours=settings.advance_booking_window)

    earliest = now + timedelta(days=settings.advance_booking_window)
    return earliest.replace(hour=0, minute=0, second=0, microsecond=0)


def is_within_advance_window(day: date, settings: CalendarSettings, now: datetime) -> bool:
    return datetime.combine(day, datetime.min.time()) >= earliest_bookable_moment(settings, now)
