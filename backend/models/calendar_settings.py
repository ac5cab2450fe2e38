"""Calendar settings model definitions."""

from sqlalchemy import JSON, Column, DateTime, Integer, String
from backend.database import Base, utc_now

SETTINGS_ROW_ID = 'default'


class CalendarSettingsRecord(Base):
    """The single persisted calendar configuration row."""
    __tablename__ = "calendar_settings"

    id = Column(String, primary_key=True, default=SETTINGS_ROW_ID)
    max_bookings_per_week = Column(Integer)
    start_time = Column(String)
    end_time = Column(String)
    slot_duration = Column(Integer)
    slot_buffer_time = Column(Integer, default=0)
    working_days = Column(JSON)  # weekday integers, 0 = Sunday
    advance_booking_window = Column(Integer, default=0)
    advance_booking_unit = Column(String, default='days')
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)
