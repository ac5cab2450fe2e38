from dataclasses import dataclass
from datetime import date, timedelta
from typing import Protocol

from backend.scheduling.availability import day_of_week
from backend.scheduling.settings import CalendarSettings


class ActiveBookingCounter(Protocol):
    def count_active_between(self, start: date, end: date) -> int:
        ...


@dataclass(frozen=True)
class WeeklyCapacity:
    week_start: date
    week_end: date
    booked: int
    max_bookings: int

    @property
    def remaining(self) -> int:
        # Not floored: an over-booked week reports a negative value.
        return self.max_bookings - self.booked

    @property
    def is_full(self) -> bool:
        return self.remaining <= 0


def week_bounds(day: date) -> tuple[date, date]:
    """Return the Monday-to-Sunday week containing ``day``.

    Sunday belongs to the week that started six days earlier.
    """
    weekday = day_of_week(day)
    offset = -6 if weekday == 0 else 1 - weekday
    week_start = day + timedelta(days=offset)
    return week_start, week_start + timedelta(days=6)


def weekly_capacity(
    day: date | None,
    settings: CalendarSettings,
    store: ActiveBookingCounter,
    week_start: date | None = None,
) -> WeeklyCapacity:
    if week_start is not None:
        start, end = week_start, week_start + timedelta(days=6)
    elif day is not None:
        start, end = week_bounds(day)
    else:
        raise ValueError('Either a date or a week start is required.')

    return WeeklyCapacity(
        week_start=start,
        week_end=end,
        booked=store.count_active_between(start, end),
        max_bookings=settings.max_bookings_per_week,
    )
