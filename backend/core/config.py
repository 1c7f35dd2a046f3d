import os
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./booking.db")

CORS_ALLOW_ORIGINS = _get_list(os.getenv("CORS_ALLOW_ORIGINS"), ["http://localhost:5173"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
# 30 days
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "43200"))

# Naive datetimes from clients and calendar-day queries are read in this zone.
BOOKING_TIMEZONE = os.getenv("BOOKING_TIMEZONE", "UTC")

NOTIFICATIONS_ENABLED = _get_bool(os.getenv("NOTIFICATIONS_ENABLED"), default=True)
SMTP_HOST = os.getenv("SMTP_HOST", "")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USERNAME = os.getenv("SMTP_USERNAME", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
SMTP_USE_TLS = _get_bool(os.getenv("SMTP_USE_TLS"), default=True)
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "Doctor Appointment App <no-reply@localhost>")


def get_booking_timezone() -> ZoneInfo:
    return ZoneInfo(BOOKING_TIMEZONE)


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    try:
        get_booking_timezone()
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise RuntimeError(f"BOOKING_TIMEZONE {BOOKING_TIMEZONE!r} is not a known timezone.") from exc
