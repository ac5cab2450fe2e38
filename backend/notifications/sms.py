import logging
from functools import lru_cache

from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from backend.core import config

logger = logging.getLogger(__name__)


def is_sms_configured() -> bool:
    return bool(
        config.SMS_ENABLED
        and config.TWILIO_ACCOUNT_SID
        and config.TWILIO_AUTH_TOKEN
        and config.TWILIO_PHONE_NUMBER
    )


@lru_cache(maxsize=1)
def get_twilio_client() -> Client:
    return Client(config.TWILIO_ACCOUNT_SID, config.TWILIO_AUTH_TOKEN)


def send_sms(to: str, message: str) -> bool:
    if not is_sms_configured():
        logger.warning('SMS not configured; skipping message to %s.', to)
        return False

    try:
        result = get_twilio_client().messages.create(
            body=message,
            from_=config.TWILIO_PHONE_NUMBER,
            to=to,
        )
    except TwilioException:
        logger.exception('Failed to send SMS to %s.', to)
        return False

    logger.info('SMS sent to %s (sid=%s).', to, result.sid)
    return True


def send_booking_confirmation(phone: str, service_type: str, scheduled_date: str, scheduled_time: str, booking_id: int) -> bool:
    message = (
        'Your booking has been confirmed!\n\n'
        f'Service: {service_type}\n'
        f'Date: {scheduled_date}\n'
        f'Time: {scheduled_time}\n'
        f'Booking ID: {booking_id}\n\n'
        'Thank you for choosing FleetPro!'
    )
    return send_sms(phone, message)


def send_status_update(phone: str, status: str, booking_id: int) -> bool:
    message = (
        'Your booking status has been updated!\n\n'
        f'Booking ID: {booking_id}\n'
        f'Status: {status}\n\n'
        'Check your booking for more details.'
    )
    return send_sms(phone, message)
