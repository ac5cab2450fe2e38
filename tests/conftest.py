import os
from datetime import date, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from backend.database import Base  # noqa: E402
from backend.models.booking import Booking  # noqa: E402
from backend.models.calendar_settings import CalendarSettingsRecord  # noqa: E402
from backend.models.user import User  # noqa: E402

TABLES = [User.__table__, Booking.__table__, CalendarSettingsRecord.__table__]


@pytest.fixture
def db_session():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=TABLES)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine, tables=TABLES)


@pytest.fixture
def add_booking(db_session):
    def _add(scheduled_date: date, scheduled_time: str, status: str = 'confirmed') -> Booking:
        booking = Booking(
            customer_name='Dana Driver',
            customer_email='dana@example.com',
            customer_phone='5550100',
            service_type='Oil change',
            scheduled_date=scheduled_date,
            scheduled_time=scheduled_time,
            status=status,
        )
        db_session.add(booking)
        db_session.commit()
        db_session.refresh(booking)
        return booking

    return _add


@pytest.fixture
def future_monday() -> date:
    today = date.today()
    return today + timedelta(days=7 - today.weekday() + 7)
