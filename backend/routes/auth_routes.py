import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth import jwt_handler
from backend.auth.dependencies import get_current_user
from backend.auth.passwords import verify_password
from backend.core import config
from backend.core.rate_limit import RateLimitStore, get_rate_limit_store
from backend.database import get_db, utc_now
from backend.models.user import User

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_DETAIL = 'Invalid email or password'


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def normalize_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not normalized:
            raise ValueError('Email and password are required')
        return normalized


class UserResponse(BaseModel):
    id: int
    email: str
    name: str | None = None
    phone: str | None = None
    role: str | None = None
    approval_status: str | None = None

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = 'bearer'
    user: UserResponse


def client_identifier(request: Request) -> str:
    forwarded_for = request.headers.get('x-forwarded-for', '')
    if forwarded_for:
        return forwarded_for.split(',')[0].strip()
    if request.client is not None:
        return request.client.host
    return 'unknown'


def enforce_rate_limit(store: RateLimitStore, key: str, max_attempts: int, window_ms: int) -> None:
    result = store.check(key, max_attempts, window_ms)
    if not result.allowed:
        logger.warning('Rate limit exceeded for %s.', key)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f'Too many attempts. Try again in {result.retry_after} seconds.',
            headers={'Retry-After': str(result.retry_after)},
        )


@router.post('/login', response_model=LoginResponse)
def login(
    data: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
    limiter: RateLimitStore = Depends(get_rate_limit_store),
):
    enforce_rate_limit(
        limiter,
        f'login:{client_identifier(request)}',
        config.LOGIN_RATE_LIMIT_ATTEMPTS,
        config.LOGIN_RATE_LIMIT_WINDOW_MS,
    )

    if not data.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Email and password are required')

    try:
        user = db.query(User).filter(User.email == data.email).first()
        if user is None or not verify_password(data.password, user.hashed_password):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS_DETAIL)

        if user.role == 'admin' and user.approval_status != 'approved':
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Your account is pending approval. Please contact an administrator.',
            )

        user.last_seen_at = utc_now()
        db.commit()
        db.refresh(user)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Login failed due to a database error.')
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Internal server error',
        ) from exc

    token = jwt_handler.create_access_token(subject=user.email, role=user.role)
    return LoginResponse(access_token=token, user=UserResponse.model_validate(user))


@router.get('/me', response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user
