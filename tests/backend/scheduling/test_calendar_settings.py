from datetime import time
from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from backend.scheduling.settings import (
    DEFAULT_CALENDAR_SETTINGS,
    CalendarSettingsUpdate,
    load_calendar_settings,
    merge_settings,
    normalize_time,
    save_calendar_settings,
)


def _update(**overrides) -> CalendarSettingsUpdate:
    payload = {
        'max_bookings_per_week': 8,
        'start_time': '07:00',
        'end_time': '15:00',
        'slot_duration': 60,
        'working_days': [1, 2, 3],
    }
    payload.update(overrides)
    return CalendarSettingsUpdate(**payload)


def test_defaults_match_documented_fallbacks() -> None:
    assert DEFAULT_CALENDAR_SETTINGS.max_bookings_per_week == 5
    assert DEFAULT_CALENDAR_SETTINGS.start_time == '06:00'
    assert DEFAULT_CALENDAR_SETTINGS.end_time == '14:00'
    assert DEFAULT_CALENDAR_SETTINGS.slot_duration == 30
    assert DEFAULT_CALENDAR_SETTINGS.working_days == [1, 2, 3, 4, 5]


def test_missing_record_yields_defaults() -> None:
    assert merge_settings(None) == DEFAULT_CALENDAR_SETTINGS


def test_record_overrides_are_merged_field_by_field() -> None:
    merged = merge_settings({'max_bookings_per_week': 9, 'start_time': '07:30:00', 'slot_duration': None})

    assert merged.max_bookings_per_week == 9
    assert merged.start_time == '07:30'
    assert merged.end_time == '14:00'
    assert merged.slot_duration == 30


def test_orm_style_record_is_supported() -> None:
    record = SimpleNamespace(
        max_bookings_per_week=3,
        start_time=time(8, 15),
        end_time='12:00',
        slot_duration=20,
        slot_buffer_time=5,
        working_days=[6, 0],
        advance_booking_window=2,
        advance_booking_unit='hours',
    )

    merged = merge_settings(record)

    assert merged.start_time == '08:15'
    assert merged.working_days == [0, 6]
    assert merged.slot_buffer_time == 5
    assert merged.advance_booking_unit == 'hours'


@pytest.mark.parametrize(
    ('field_name', 'bad_value'),
    [
        ('start_time', '6am'),
        ('end_time', '25:00'),
        ('slot_duration', 0),
        ('slot_duration', '30'),
        ('max_bookings_per_week', -1),
        ('working_days', [1, 9]),
        ('working_days', 'weekdays'),
        ('working_days', [[1], 2]),
        ('working_days', [True]),
        ('advance_booking_unit', 'weeks'),
    ],
)
def test_malformed_values_fall_back_to_defaults(field_name: str, bad_value) -> None:
    merged = merge_settings({field_name: bad_value})

    assert getattr(merged, field_name) == getattr(DEFAULT_CALENDAR_SETTINGS, field_name)


def test_merge_does_not_mutate_defaults() -> None:
    merged = merge_settings(None)
    merged.working_days.append(6)

    assert DEFAULT_CALENDAR_SETTINGS.working_days == [1, 2, 3, 4, 5]


@pytest.mark.parametrize(
    ('value', 'expected'),
    [('09:00', '09:00'), ('09:00:59', '09:00'), (' 10:15 ', '10:15'), ('9:00', None), (None, None), (900, None)],
)
def test_normalize_time(value, expected) -> None:
    assert normalize_time(value) == expected


def test_load_returns_defaults_when_table_is_empty(db_session) -> None:
    assert load_calendar_settings(db_session) == DEFAULT_CALENDAR_SETTINGS


def test_save_then_load_round_trips_single_row(db_session) -> None:
    save_calendar_settings(_update(), db_session)
    saved = save_calendar_settings(_update(max_bookings_per_week=12, slot_buffer_time=10), db_session)

    loaded = load_calendar_settings(db_session)

    assert saved == loaded
    assert loaded.max_bookings_per_week == 12
    assert loaded.slot_buffer_time == 10
    assert loaded.advance_booking_unit == 'days'


@pytest.mark.parametrize(
    'overrides',
    [
        {'max_bookings_per_week': 0},
        {'max_bookings_per_week': 21},
        {'slot_duration': 10},
        {'slot_duration': 121},
        {'slot_buffer_time': 61},
        {'start_time': '7:00'},
        {'end_time': '24:00'},
        {'working_days': [7]},
        {'advance_booking_window': -1},
        {'advance_booking_unit': 'weeks'},
    ],
)
def test_settings_update_rejects_out_of_range_values(overrides) -> None:
    with pytest.raises(ValidationError):
        _update(**overrides)


def test_settings_update_deduplicates_working_days() -> None:
    assert _update(working_days=[5, 1, 1]).working_days == [1, 5]
