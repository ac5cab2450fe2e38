from datetime import datetime, timezone
from threading import Lock

from fastapi import HTTPException, status
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from backend.core import config


DATABASE_URL = config.DATABASE_URL

engine = create_engine(DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

ACTIVE_STATUS_SQL = "status IN ('pending', 'confirmed', 'in_progress')"

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and Postgres credentials.'

_schema_lock = Lock()
_booking_schema_checked = False
_calendar_settings_schema_checked = False


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_booking_schema() -> None:
    global _booking_schema_checked

    if _booking_schema_checked:
        return

    with _schema_lock:
        if _booking_schema_checked:
            return

        inspector = inspect(engine)

        if 'bookings' not in inspector.get_table_names():
            _booking_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('bookings')}
        migration_steps = [
            ('vehicle_id', 'ALTER TABLE bookings ADD COLUMN vehicle_id VARCHAR'),
            ('mechanic_id', 'ALTER TABLE bookings ADD COLUMN mechanic_id VARCHAR'),
            ('notes', 'ALTER TABLE bookings ADD COLUMN notes VARCHAR'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_bookings_date_status ON bookings(scheduled_date, status)')
            )
            connection.execute(
                text(
                    'CREATE UNIQUE INDEX IF NOT EXISTS uq_bookings_active_slot '
                    f'ON bookings(scheduled_date, scheduled_time) WHERE {ACTIVE_STATUS_SQL}'
                )
            )

        _booking_schema_checked = True


def ensure_calendar_settings_schema() -> None:
    global _calendar_settings_schema_checked

    if _calendar_settings_schema_checked:
        return

    with _schema_lock:
        if _calendar_settings_schema_checked:
            return

        inspector = inspect(engine)

        if 'calendar_settings' not in inspector.get_table_names():
            _calendar_settings_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('calendar_settings')}
        migration_steps = [
            ('slot_buffer_time', 'ALTER TABLE calendar_settings ADD COLUMN slot_buffer_time INTEGER DEFAULT 0'),
            ('advance_booking_window', 'ALTER TABLE calendar_settings ADD COLUMN advance_booking_window INTEGER DEFAULT 0'),
            ('advance_booking_unit', "ALTER TABLE calendar_settings ADD COLUMN advance_booking_unit VARCHAR DEFAULT 'days'"),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))

        _calendar_settings_schema_checked = True


def ensure_database_ready() -> None:
    try:
        ensure_booking_schema()
        ensure_calendar_settings_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc
