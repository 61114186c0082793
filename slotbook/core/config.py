import os

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

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./slotbook.db")
DB_STATEMENT_TIMEOUT_MS = int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "5000"))
DB_ISOLATION_LEVEL = os.getenv("DB_ISOLATION_LEVEL") or None

SCHEDULING_TIMEZONE = os.getenv("SCHEDULING_TIMEZONE", "America/Santiago")
SLOT_MINUTES = int(os.getenv("SLOT_MINUTES", "15"))
EXPIRY_TOLERANCE_MS = int(os.getenv("EXPIRY_TOLERANCE_MS", "999"))
APPOINTMENT_RETENTION_DAYS = int(os.getenv("APPOINTMENT_RETENTION_DAYS", "7"))

DEFAULT_APPOINTMENT_DURATION_MINUTES = int(os.getenv("DEFAULT_APPOINTMENT_DURATION_MINUTES", "15"))
DEFAULT_CONSULTATION_TYPE_DURATION_MINUTES = int(os.getenv("DEFAULT_CONSULTATION_TYPE_DURATION_MINUTES", "60"))

SWEEPER_ENABLED = _get_bool(os.getenv("SWEEPER_ENABLED"), default=True)
SWEEP_INTERVAL_MINUTES = int(os.getenv("SWEEP_INTERVAL_MINUTES", "15"))

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

CORS_ALLOWED_ORIGINS = _get_list(os.getenv("CORS_ALLOWED_ORIGINS"), ["http://localhost:3000"])

def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if SLOT_MINUTES <= 0 or 60 % SLOT_MINUTES != 0:
        raise RuntimeError("SLOT_MINUTES must evenly divide an hour.")
    if not 0 <= EXPIRY_TOLERANCE_MS < SLOT_MINUTES * 60 * 1000:
        raise RuntimeError("EXPIRY_TOLERANCE_MS must be non-negative and shorter than one slot.")
    if SWEEP_INTERVAL_MINUTES <= 0:
        raise RuntimeError("SWEEP_INTERVAL_MINUTES must be positive.")
