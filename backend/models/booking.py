"""Booking model definitions."""

from sqlalchemy import Column, Date, DateTime, Index, Integer, String, text
from backend.database import ACTIVE_STATUS_SQL, Base, utc_now

BOOKING_STATUSES = ('pending', 'confirmed', 'in_progress', 'completed', 'cancelled')
ACTIVE_BOOKING_STATUSES = ('pending', 'confirmed', 'in_progress')


class Booking(Base):
    """Represents a customer service booking."""
    __tablename__ = "bookings"
    __table_args__ = (
        Index('idx_bookings_date_status', 'scheduled_date', 'status'),
        # One active booking per exact date and time string.
        Index(
            'uq_bookings_active_slot',
            'scheduled_date',
            'scheduled_time',
            unique=True,
            sqlite_where=text(ACTIVE_STATUS_SQL),
            postgresql_where=text(ACTIVE_STATUS_SQL),
        ),
    )

    id = Column(Integer, primary_key=True)
    customer_name = Column(String)
    customer_email = Column(String)
    customer_phone = Column(String)
    service_type = Column(String)
    scheduled_date = Column(Date, nullable=False)
    scheduled_time = Column(String(5), nullable=False)  # HH:MM
    status = Column(String, nullable=False, default='pending')
    vehicle_id = Column(String)
    mechanic_id = Column(String)
    notes = Column(String)
    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)
