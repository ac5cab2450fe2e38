"""Calendar settings: the default configuration and persisted overrides.

Every consumer reads settings through ``load_calendar_settings`` so that the
fallback values live in one place (``DEFAULT_CALENDAR_SETTINGS``) instead of
being repeated inline by each handler.
"""

import logging
import re
from typing import Any, Literal

from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.models.calendar_settings import SETTINGS_ROW_ID, CalendarSettingsRecord

logger = logging.getLogger(__name__)

HH_MM_PATTERN = re.compile(r'^\d{2}:\d{2}$')
HH_MM_SS_PATTERN = re.compile(r'^\d{2}:\d{2}:\d{2}$')


class CalendarSettings(BaseModel):
    max_bookings_per_week: int
    start_time: str
    end_time: str
    slot_duration: int
    slot_buffer_time: int = 0
    working_days: list[int]
    advance_booking_window: int = 0
    advance_booking_unit: Literal['hours', 'days'] = 'days'


DEFAULT_CALENDAR_SETTINGS = CalendarSettings(
    max_bookings_per_week=5,
    start_time='06:00',
    end_time='14:00',
    slot_duration=30,
    slot_buffer_time=0,
    working_days=[1, 2, 3, 4, 5],
    advance_booking_window=0,
    advance_booking_unit='days',
)


def _is_valid_clock(value: str) -> bool:
    hours, minutes = value.split(':')[:2]
    return 0 <= int(hours) <= 23 and 0 <= int(minutes) <= 59


def normalize_time(value: Any) -> str | None:
    """Return an ``HH:MM`` string, or ``None`` when the value is unusable."""
    if value is None:
        return None

    if hasattr(value, 'strftime'):
        return value.strftime('%H:%M')

    if not isinstance(value, str):
        return None

    candidate = value.strip()
    if HH_MM_SS_PATTERN.match(candidate):
        candidate = candidate[:5]
    if not HH_MM_PATTERN.match(candidate) or not _is_valid_clock(candidate):
        return None

    return candidate


def _positive_int(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value if value > 0 else None


def _non_negative_int(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value if value >= 0 else None


def _working_days(value: Any) -> list[int] | None:
    if not isinstance(value, (list, tuple, set)):
        return None
    for day in value:
        if isinstance(day, bool) or not isinstance(day, int) or not 0 <= day <= 6:
            return None
    return sorted(set(value))


def merge_settings(record: Any | None) -> CalendarSettings:
    """Overlay a persisted record on the defaults, field by field.

    Missing, ``None`` or malformed values keep the default for that field.
    ``record`` may be an ORM row, a mapping, or ``None``.
    """
    if record is None:
        return DEFAULT_CALENDAR_SETTINGS.model_copy(deep=True)

    if isinstance(record, dict):
        read = record.get
    else:
        def read(name):
            return getattr(record, name, None)

    defaults = DEFAULT_CALENDAR_SETTINGS
    overrides = {
        'max_bookings_per_week': _positive_int(read('max_bookings_per_week')),
        'start_time': normalize_time(read('start_time')),
        'end_time': normalize_time(read('end_time')),
        'slot_duration': _positive_int(read('slot_duration')),
        'slot_buffer_time': _non_negative_int(read('slot_buffer_time')),
        'working_days': _working_days(read('working_days')),
        'advance_booking_window': _non_negative_int(read('advance_booking_window')),
        'advance_booking_unit': read('advance_booking_unit') if read('advance_booking_unit') in ('hours', 'days') else None,
    }

    merged = defaults.model_dump()
    for field_name, value in overrides.items():
        if value is not None:
            merged[field_name] = value

    return CalendarSettings(**merged)


def load_calendar_settings(db: Session) -> CalendarSettings:
    try:
        record = db.query(CalendarSettingsRecord).filter(
            CalendarSettingsRecord.id == SETTINGS_ROW_ID,
        ).first()
    except SQLAlchemyError:
        logger.exception('Could not read calendar settings; using defaults.')
        db.rollback()
        return merge_settings(None)

    if record is None:
        logger.debug('No calendar settings stored; using defaults.')

    return merge_settings(record)


class CalendarSettingsUpdate(BaseModel):
    max_bookings_per_week: int
    start_time: str
    end_time: str
    slot_duration: int
    slot_buffer_time: int | None = None
    working_days: list[int]
    advance_booking_window: int | None = None
    advance_booking_unit: Literal['hours', 'days'] | None = None

    @field_validator('max_bookings_per_week')
    @classmethod
    def validate_max_bookings(cls, value: int) -> int:
        if not 1 <= value <= 20:
            raise ValueError('Max bookings per week must be between 1 and 20.')
        return value

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_clock_time(cls, value: str) -> str:
        normalized = value.strip()
        if not HH_MM_PATTERN.match(normalized) or not _is_valid_clock(normalized):
            raise ValueError('Times must use the HH:MM format.')
        return normalized

    @field_validator('slot_duration')
    @classmethod
    def validate_slot_duration(cls, value: int) -> int:
        if not 15 <= value <= 120:
            raise ValueError('Slot duration must be between 15 and 120 minutes.')
        return value

    @field_validator('slot_buffer_time')
    @classmethod
    def validate_slot_buffer_time(cls, value: int | None) -> int | None:
        if value is not None and not 0 <= value <= 60:
            raise ValueError('Slot buffer time must be between 0 and 60 minutes.')
        return value

    @field_validator('working_days')
    @classmethod
    def validate_working_days(cls, value: list[int]) -> list[int]:
        if any(day < 0 or day > 6 for day in value):
            raise ValueError('Working days must be integers from 0 (Sunday) to 6 (Saturday).')
        return sorted(set(value))

    @field_validator('advance_booking_window')
    @classmethod
    def validate_advance_booking_window(cls, value: int | None) -> int | None:
        if value is not None and value < 0:
            raise ValueError('Advance booking window cannot be negative.')
        return value


def save_calendar_settings(data: CalendarSettingsUpdate, db: Session) -> CalendarSettings:
    """Upsert the single settings row. Callers handle ``SQLAlchemyError``."""
    record = db.get(CalendarSettingsRecord, SETTINGS_ROW_ID)
    if record is None:
        record = CalendarSettingsRecord(id=SETTINGS_ROW_ID)
        db.add(record)

    record.max_bookings_per_week = data.max_bookings_per_week
    record.start_time = data.start_time
    record.end_time = data.end_time
    record.slot_duration = data.slot_duration
    record.working_days = data.working_days
    record.slot_buffer_time = data.slot_buffer_time or 0
    record.advance_booking_window = data.advance_booking_window or 0
    record.advance_booking_unit = data.advance_booking_unit or 'days'

    db.commit()
    db.refresh(record)

    logger.info('Calendar settings updated.')
    return merge_settings(record)
