from datetime import date, datetime

import pytest

from backend.scheduling.availability import (
    calculate_available_slots,
    day_of_week,
    earliest_bookable_moment,
    is_within_advance_window,
    iterate_slot_times,
)
from backend.scheduling.booking_store import BookingStore, PrefetchedBookingStore
from backend.scheduling.settings import DEFAULT_CALENDAR_SETTINGS

MONDAY = date(2026, 1, 5)
SUNDAY = date(2026, 1, 4)


def _settings(**overrides):
    return DEFAULT_CALENDAR_SETTINGS.model_copy(update=overrides)


class _FakeStore:
    def __init__(self, occupied=()):
        self.occupied = set(occupied)
        self.queries = []

    def is_slot_occupied(self, day, slot_time):
        self.queries.append((day, slot_time))
        return (day, slot_time) in self.occupied


@pytest.mark.parametrize(
    ('day', 'expected'),
    [
        (date(2026, 1, 4), 0),
        (date(2026, 1, 5), 1),
        (date(2026, 1, 9), 5),
        (date(2026, 1, 10), 6),
    ],
)
def test_day_of_week_counts_from_sunday(day: date, expected: int) -> None:
    assert day_of_week(day) == expected


def test_window_end_is_exclusive() -> None:
    settings = _settings(start_time='06:00', end_time='08:00', slot_duration=30)

    assert calculate_available_slots(MONDAY, settings, _FakeStore()) == ['06:00', '06:30', '07:00', '07:30']


def test_default_settings_produce_sixteen_slots() -> None:
    slots = list(iterate_slot_times(DEFAULT_CALENDAR_SETTINGS))

    assert len(slots) == 16
    assert slots[0] == '06:00'
    assert slots[-1] == '13:30'


def test_partial_trailing_slot_is_dropped() -> None:
    settings = _settings(start_time='06:00', end_time='07:00', slot_duration=45)

    assert list(iterate_slot_times(settings)) == ['06:00']


def test_buffer_time_widens_the_stride() -> None:
    settings = _settings(start_time='06:00', end_time='08:00', slot_duration=30, slot_buffer_time=15)

    assert list(iterate_slot_times(settings)) == ['06:00', '06:45', '07:30']


def test_inverted_window_has_no_slots() -> None:
    settings = _settings(start_time='14:00', end_time='06:00')

    assert list(iterate_slot_times(settings)) == []


def test_closed_day_returns_nothing_without_querying() -> None:
    store = _FakeStore()

    assert calculate_available_slots(SUNDAY, DEFAULT_CALENDAR_SETTINGS, store) == []
    assert store.queries == []


def test_custom_working_days_open_the_weekend() -> None:
    settings = _settings(start_time='06:00', end_time='07:00', working_days=[0, 6])

    assert calculate_available_slots(SUNDAY, settings, _FakeStore()) == ['06:00', '06:30']
    assert calculate_available_slots(MONDAY, settings, _FakeStore()) == []


def test_occupied_slots_are_removed_in_order() -> None:
    settings = _settings(start_time='06:00', end_time='08:00')
    store = _FakeStore(occupied={(MONDAY, '06:30'), (date(2026, 1, 6), '07:00')})

    assert calculate_available_slots(MONDAY, settings, store) == ['06:00', '07:00', '07:30']


def test_confirmed_booking_blocks_slot_but_cancelled_does_not(db_session, add_booking) -> None:
    settings = _settings(start_time='06:00', end_time='08:00')
    add_booking(MONDAY, '06:30', status='confirmed')
    add_booking(MONDAY, '07:00', status='cancelled')
    add_booking(MONDAY, '07:30', status='completed')

    slots = calculate_available_slots(MONDAY, settings, BookingStore(db_session))

    assert slots == ['06:00', '07:00', '07:30']


@pytest.mark.parametrize('status', ['pending', 'confirmed', 'in_progress'])
def test_every_active_status_occupies_a_slot(db_session, add_booking, status: str) -> None:
    add_booking(MONDAY, '06:00', status=status)

    assert BookingStore(db_session).is_slot_occupied(MONDAY, '06:00') is True


def test_off_grid_booking_does_not_block_grid_slots(db_session, add_booking) -> None:
    settings = _settings(start_time='06:00', end_time='07:00')
    add_booking(MONDAY, '06:10', status='confirmed')

    assert calculate_available_slots(MONDAY, settings, BookingStore(db_session)) == ['06:00', '06:30']


def test_prefetched_store_matches_database_store(db_session, add_booking) -> None:
    add_booking(MONDAY, '06:30', status='pending')
    add_booking(MONDAY, '07:00', status='cancelled')
    store = BookingStore(db_session)

    prefetched = PrefetchedBookingStore(store.occupied_times_by_date(MONDAY, MONDAY))

    assert prefetched.occupied == {MONDAY: {'06:30'}}
    assert prefetched.is_slot_occupied(MONDAY, '06:30') is True
    assert prefetched.is_slot_occupied(MONDAY, '07:00') is False


def test_advance_window_in_days_starts_at_midnight() -> None:
    settings = _settings(advance_booking_window=2, advance_booking_unit='days')
    now = datetime(2026, 1, 5, 15, 0)

    assert earliest_bookable_moment(settings, now) == datetime(2026, 1, 7, 0, 0)
    assert is_within_advance_window(date(2026, 1, 6), settings, now) is False
    assert is_within_advance_window(date(2026, 1, 7), settings, now) is True


def test_advance_window_of_zero_days_includes_today() -> None:
    now = datetime(2026, 1, 5, 15, 0)

    assert is_within_advance_window(date(2026, 1, 5), DEFAULT_CALENDAR_SETTINGS, now) is True
    assert is_within_advance_window(date(2026, 1, 4), DEFAULT_CALENDAR_SETTINGS, now) is False


def test_advance_window_in_hours_compares_against_midnight() -> None:
    settings = _settings(advance_booking_window=3, advance_booking_unit='hours')
    now = datetime(2026, 1, 5, 22, 0)

    assert earliest_bookable_moment(settings, now) == datetime(2026, 1, 6, 1, 0)
    assert is_within_advance_window(date(2026, 1, 6), settings, now) is False
    assert is_within_advance_window(date(2026, 1, 7), settings, now) is True
