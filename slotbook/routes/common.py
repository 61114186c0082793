from datetime import datetime, timezone

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from slotbook.database import ensure_appointment_schema, ensure_slot_schema
from slotbook.scheduling.errors import (
    MisalignedRange,
    SchedulingAuthorizationError,
    SchedulingConflictError,
    SchedulingError,
    SchedulingNotFoundError,
    SchedulingValidationError,
)

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'


def database_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )


def ensure_database_ready() -> None:
    try:
        ensure_slot_schema()
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


def as_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def to_http_exception(exc: SchedulingError) -> HTTPException:
    if isinstance(exc, MisalignedRange):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                'message': str(exc),
                'parsed_start': exc.start.isoformat(),
                'parsed_end': exc.end.isoformat(),
                'slot_minutes': exc.slot_minutes,
            },
        )
    if isinstance(exc, SchedulingValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, SchedulingConflictError):
        status_code = status.HTTP_409_CONFLICT
    elif isinstance(exc, SchedulingAuthorizationError):
        status_code = status.HTTP_403_FORBIDDEN
    elif isinstance(exc, SchedulingNotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=status_code, detail=str(exc))
