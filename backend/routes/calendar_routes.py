import logging
from datetime import date, datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import require_admin
from backend.database import DATABASE_UNAVAILABLE_DETAIL, ensure_database_ready, get_db
from backend.models.user import User
from backend.scheduling.availability import (
    calculate_available_slots,
    earliest_bookable_moment,
    is_within_advance_window,
)
from backend.scheduling.booking_store import BookingStore, PrefetchedBookingStore
from backend.scheduling.capacity import weekly_capacity
from backend.scheduling.settings import (
    CalendarSettings,
    CalendarSettingsUpdate,
    load_calendar_settings,
    save_calendar_settings,
)

router = APIRouter(tags=['calendar'])

logger = logging.getLogger(__name__)

MAX_DATE_RANGE_DAYS = 93


class AvailabilityResponse(BaseModel):
    week_start: date
    week_end: date
    weekly_bookings: int
    max_bookings_per_week: int
    bookings_remaining: int
    available_slots: list[str]
    working_days: list[int]
    advance_booking_window: int
    advance_booking_unit: str


class DateAvailability(BaseModel):
    has_slots: bool
    slot_count: int


class DatesAvailabilityResponse(BaseModel):
    date_availability: dict[date, DateAvailability]
    min_booking_date: date
    advance_booking_window: int
    advance_booking_unit: str


class CalendarSettingsResponse(BaseModel):
    settings: CalendarSettings


@router.get('/availability', response_model=AvailabilityResponse)
def get_availability(
    day: date | None = Query(default=None, alias='date'),
    week_start: date | None = Query(default=None, alias='weekStart'),
    db: Session = Depends(get_db),
):
    if day is None and week_start is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='date or weekStart parameter required',
        )

    ensure_database_ready()

    try:
        settings = load_calendar_settings(db)
        store = BookingStore(db)
        capacity = weekly_capacity(day, settings, store, week_start=week_start)

        available_slots: list[str] = []
        if (
            day is not None
            and not capacity.is_full
            and is_within_advance_window(day, settings, datetime.now())
        ):
            available_slots = calculate_available_slots(day, settings, store)

        return AvailabilityResponse(
            week_start=capacity.week_start,
            week_end=capacity.week_end,
            weekly_bookings=capacity.booked,
            max_bookings_per_week=capacity.max_bookings,
            bookings_remaining=capacity.remaining,
            available_slots=available_slots,
            working_days=settings.working_days,
            advance_booking_window=settings.advance_booking_window,
            advance_booking_unit=settings.advance_booking_unit,
        )
    except SQLAlchemyError as exc:
        logger.exception('Failed to check availability.')
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.get('/dates-availability', response_model=DatesAvailabilityResponse)
def get_dates_availability(
    start_date: date = Query(alias='startDate'),
    end_date: date = Query(alias='endDate'),
    db: Session = Depends(get_db),
):
    if end_date < start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='endDate must not be before startDate.',
        )

    if (end_date - start_date).days > MAX_DATE_RANGE_DAYS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'Date range cannot exceed {MAX_DATE_RANGE_DAYS} days.',
        )

    ensure_database_ready()

    try:
        settings = load_calendar_settings(db)
        store = BookingStore(db)
        now = datetime.now()

        # The weekly limit is judged on the week that contains start_date.
        capacity = weekly_capacity(start_date, settings, store)
        prefetched = PrefetchedBookingStore(store.occupied_times_by_date(start_date, end_date))

        date_availability: dict[date, DateAvailability] = {}
        current_day = start_date
        while current_day <= end_date:
            slot_count = 0
            if not capacity.is_full and is_within_advance_window(current_day, settings, now):
                slot_count = len(calculate_available_slots(current_day, settings, prefetched))

            date_availability[current_day] = DateAvailability(has_slots=slot_count > 0, slot_count=slot_count)
            current_day += timedelta(days=1)

        return DatesAvailabilityResponse(
            date_availability=date_availability,
            min_booking_date=earliest_bookable_moment(settings, now).date(),
            advance_booking_window=settings.advance_booking_window,
            advance_booking_unit=settings.advance_booking_unit,
        )
    except SQLAlchemyError as exc:
        logger.exception('Failed to check dates availability.')
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.get('/settings', response_model=CalendarSettingsResponse)
def get_calendar_settings(db: Session = Depends(get_db)):
    return CalendarSettingsResponse(settings=load_calendar_settings(db))


@router.post('/settings', response_model=CalendarSettingsResponse)
def update_calendar_settings(
    data: CalendarSettingsUpdate,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    ensure_database_ready()

    try:
        return CalendarSettingsResponse(settings=save_calendar_settings(data, db))
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to save calendar settings.')
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Failed to save calendar settings',
        ) from exc
