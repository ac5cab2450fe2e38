import logging
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import require_admin
from backend.database import DATABASE_UNAVAILABLE_DETAIL, ensure_database_ready, get_db
from backend.models.booking import BOOKING_STATUSES, Booking
from backend.models.calendar_settings import SETTINGS_ROW_ID, CalendarSettingsRecord
from backend.models.user import User
from backend.notifications import sms
from backend.scheduling.booking_store import BookingStore
from backend.scheduling.capacity import weekly_capacity
from backend.scheduling.settings import load_calendar_settings, normalize_time

router = APIRouter(tags=['bookings'])

logger = logging.getLogger(__name__)


def _normalize_scheduled_time(value: str) -> str:
    normalized = normalize_time(value)
    if normalized is None:
        raise ValueError('scheduled_time must use the HH:MM format.')
    return normalized


class CreateBookingRequest(BaseModel):
    customer_name: str
    customer_email: EmailStr
    customer_phone: str
    service_type: str
    scheduled_date: date
    scheduled_time: str
    vehicle_info: str | None = None
    vehicle_id: str | None = None
    notes: str | None = None
    sms_consent: bool | None = None
    compliance_accepted: bool | None = None

    @field_validator('customer_name', 'service_type')
    @classmethod
    def validate_required_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('This field is required.')
        return normalized

    @field_validator('customer_phone')
    @classmethod
    def validate_customer_phone(cls, value: str) -> str:
        normalized = value.strip()
        if len(normalized) < 6:
            raise ValueError('customerPhone is required')
        return normalized

    @field_validator('scheduled_time')
    @classmethod
    def validate_scheduled_time(cls, value: str) -> str:
        return _normalize_scheduled_time(value)


class UpdateBookingRequest(BaseModel):
    customer_name: str | None = None
    customer_email: EmailStr | None = None
    customer_phone: str | None = None
    service_type: str | None = None
    scheduled_date: date | None = None
    scheduled_time: str | None = None
    status: str | None = None
    mechanic_id: str | None = None
    vehicle_id: str | None = None
    notes: str | None = None

    # Omit these to leave them unchanged; the columns are NOT NULL.
    @field_validator('scheduled_date', 'scheduled_time', 'status', mode='before')
    @classmethod
    def reject_explicit_null(cls, value):
        if value is None:
            raise ValueError('This field cannot be null.')
        return value

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in BOOKING_STATUSES:
            raise ValueError('Invalid booking status.')
        return normalized

    @field_validator('scheduled_time')
    @classmethod
    def validate_scheduled_time(cls, value: str) -> str:
        return _normalize_scheduled_time(value)


class BookingResponse(BaseModel):
    id: int
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    service_type: str | None = None
    scheduled_date: date
    scheduled_time: str
    status: str
    vehicle_id: str | None = None
    mechanic_id: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


def build_compliance_note(data: CreateBookingRequest) -> str | None:
    lines = [
        f'Vehicle: {data.vehicle_info}' if data.vehicle_info else None,
        data.notes or None,
        f"SMS consent: {'opted-in' if data.sms_consent else 'declined'}" if data.sms_consent is not None else None,
        'Compliance acknowledged' if data.compliance_accepted else None,
    ]
    note = '\n'.join(line for line in lines if line)
    return note or None


def lock_calendar_settings(db: Session) -> None:
    """Serialize booking inserts on the settings row where the backend supports it."""
    db.query(CalendarSettingsRecord.id).filter(
        CalendarSettingsRecord.id == SETTINGS_ROW_ID,
    ).with_for_update().first()


def get_booking_or_404(booking_id: int, db: Session) -> Booking:
    booking = db.get(Booking, booking_id)
    if booking is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Booking not found')
    return booking


@router.get('', response_model=list[BookingResponse])
def list_bookings(db: Session = Depends(get_db), _admin: User = Depends(require_admin)):
    ensure_database_ready()

    try:
        return db.query(Booking).order_by(Booking.scheduled_date.asc(), Booking.scheduled_time.asc()).all()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.post('', response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(data: CreateBookingRequest, db: Session = Depends(get_db)):
    if data.compliance_accepted is not True:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='SMS compliance acknowledgment is required before booking.',
        )

    ensure_database_ready()

    try:
        lock_calendar_settings(db)
        settings = load_calendar_settings(db)
        capacity = weekly_capacity(data.scheduled_date, settings, BookingStore(db))
        if capacity.is_full:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='No bookings remaining for this week.',
            )

        booking = Booking(
            customer_name=data.customer_name,
            customer_email=data.customer_email,
            customer_phone=data.customer_phone,
            service_type=data.service_type,
            scheduled_date=data.scheduled_date,
            scheduled_time=data.scheduled_time,
            vehicle_id=data.vehicle_id,
            notes=build_compliance_note(data),
            status='pending',
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='This time is already booked.',
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to create booking.')
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc

    logger.info('Booking %s created for %s %s.', booking.id, booking.scheduled_date, booking.scheduled_time)

    if data.sms_consent is not False:
        sms.send_booking_confirmation(
            data.customer_phone,
            service_type=data.service_type,
            scheduled_date=data.scheduled_date.isoformat(),
            scheduled_time=data.scheduled_time,
            booking_id=booking.id,
        )

    return booking


@router.get('/{booking_id}', response_model=BookingResponse)
def get_booking(booking_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return get_booking_or_404(booking_id, db)
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.patch('/{booking_id}', response_model=BookingResponse)
def update_booking(
    booking_id: int,
    data: UpdateBookingRequest,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    ensure_database_ready()

    try:
        booking = get_booking_or_404(booking_id, db)
        previous_status = booking.status

        # Any status may be set to any other.
        for field_name, value in data.model_dump(exclude_unset=True).items():
            setattr(booking, field_name, value)

        db.commit()
        db.refresh(booking)
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='Another active booking already holds this time.',
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to update booking %s.', booking_id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc

    if data.status and data.status != previous_status and booking.customer_phone:
        sms.send_status_update(booking.customer_phone, data.status, booking.id)

    return booking


@router.delete('/{booking_id}')
def delete_booking(booking_id: int, db: Session = Depends(get_db), _admin: User = Depends(require_admin)):
    ensure_database_ready()

    try:
        booking = get_booking_or_404(booking_id, db)
        db.delete(booking)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc

    return {'message': 'Booking deleted'}
