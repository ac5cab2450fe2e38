import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    return int(value)


APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./fleet.db")

CORS_ALLOW_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = _get_int(os.getenv("JWT_EXPIRES_MINUTES"), 60)

LOGIN_RATE_LIMIT_ATTEMPTS = _get_int(os.getenv("LOGIN_RATE_LIMIT_ATTEMPTS"), 5)
LOGIN_RATE_LIMIT_WINDOW_MS = _get_int(os.getenv("LOGIN_RATE_LIMIT_WINDOW_MS"), 60_000)
SMS_RATE_LIMIT_ATTEMPTS = _get_int(os.getenv("SMS_RATE_LIMIT_ATTEMPTS"), 10)
SMS_RATE_LIMIT_WINDOW_MS = _get_int(os.getenv("SMS_RATE_LIMIT_WINDOW_MS"), 60_000)
RATE_LIMIT_SWEEP_THRESHOLD = _get_int(os.getenv("RATE_LIMIT_SWEEP_THRESHOLD"), 10_000)

TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID", "")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN", "")
TWILIO_PHONE_NUMBER = os.getenv("TWILIO_PHONE_NUMBER", "")
SMS_ENABLED = _get_bool(os.getenv("SMS_ENABLED"), default=True)

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
TRIAGE_MODEL = os.getenv("TRIAGE_MODEL", "gpt-4o-mini")
TRIAGE_TIMEOUT_SECONDS = float(os.getenv("TRIAGE_TIMEOUT_SECONDS", "10"))


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
