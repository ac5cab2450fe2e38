from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from backend.auth.dependencies import require_staff
from backend.core import config
from backend.core.rate_limit import RateLimitStore, get_rate_limit_store
from backend.models.user import User
from backend.notifications import sms
from backend.routes.auth_routes import enforce_rate_limit

router = APIRouter(tags=['sms'])


class SendSmsRequest(BaseModel):
    to: str | None = None
    message: str | None = None


@router.post('/send')
def send_sms(
    data: SendSmsRequest,
    current_user: User = Depends(require_staff),
    limiter: RateLimitStore = Depends(get_rate_limit_store),
):
    if not (data.to or '').strip() or not (data.message or '').strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Missing required fields: to and message',
        )

    enforce_rate_limit(
        limiter,
        f'sms:{current_user.id}',
        config.SMS_RATE_LIMIT_ATTEMPTS,
        config.SMS_RATE_LIMIT_WINDOW_MS,
    )

    if not sms.send_sms(data.to.strip(), data.message):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Failed to send SMS',
        )

    return {'message': 'SMS sent successfully'}
