from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from slotbook.auth.dependencies import get_current_owner
from slotbook.database import get_db
from slotbook.models.professional import Professional
from slotbook.routes.common import as_utc, database_unavailable, ensure_database_ready, to_http_exception
from slotbook.scheduling.clock import SchedulingClock, get_clock
from slotbook.scheduling.errors import SchedulingError
from slotbook.scheduling.lifecycle import (
    BookingDetails,
    book_appointment,
    cancel_appointment,
    get_owned_appointment,
    list_appointments,
    list_due_reminders,
    mark_reminder_sent,
    reschedule_appointment,
)
from slotbook.scheduling.reservation import ReleaseResult

router = APIRouter(tags=['appointments'])

MAX_REASON_LENGTH = 600


def _normalize_optional(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    return normalized or None


class BookAppointmentRequest(BaseModel):
    slot_id: int | None = None
    start_time: datetime | None = None
    duration_minutes: int | None = None
    consultation_type_id: int | None = None
    client_name: str | None = None
    client_email: str | None = None
    client_phone: str | None = None
    reason: str | None = None

    @field_validator('client_name', 'client_phone')
    @classmethod
    def strip_text(cls, value: str | None) -> str | None:
        return _normalize_optional(value)

    @field_validator('client_email')
    @classmethod
    def normalize_email(cls, value: str | None) -> str | None:
        normalized = _normalize_optional(value)
        return normalized.lower() if normalized else None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        normalized = _normalize_optional(value)
        if normalized and len(normalized) > MAX_REASON_LENGTH:
            raise ValueError(f'Reason must be {MAX_REASON_LENGTH} characters or fewer.')
        return normalized

    @field_validator('duration_minutes')
    @classmethod
    def validate_duration(cls, value: int | None) -> int | None:
        if value is not None and value <= 0:
            raise ValueError('Duration must be a positive number of minutes.')
        return value

    def details(self) -> BookingDetails:
        return BookingDetails(
            client_name=self.client_name,
            client_email=self.client_email,
            client_phone=self.client_phone,
            reason=self.reason,
        )


class PublicBookAppointmentRequest(BookAppointmentRequest):
    owner_id: int
    start_time: datetime
    client_email: str
    client_phone: str

    @field_validator('client_email', 'client_phone')
    @classmethod
    def require_contact(cls, value: str | None) -> str:
        normalized = (value or '').strip()
        if not normalized:
            raise ValueError('Email and phone are required for public bookings.')
        return normalized


class RescheduleAppointmentRequest(BaseModel):
    slot_id: int | None = None
    start_time: datetime | None = None
    duration_minutes: int | None = None


class AppointmentResponse(BaseModel):
    id: int
    owner_id: int
    consultation_type_id: int | None = None
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    status: str
    client_name: str | None = None
    client_email: str | None = None
    client_phone: str | None = None
    reason: str | None = None
    reminder_24h_sent: bool
    reminder_24h_sent_at: datetime | None = None
    reminder_1h_sent: bool
    reminder_1h_sent_at: datetime | None = None

    @field_validator('start_time', 'end_time', 'reminder_24h_sent_at', 'reminder_1h_sent_at')
    @classmethod
    def attach_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)

    class Config:
        from_attributes = True


class RescheduleAppointmentResponse(BaseModel):
    appointment: AppointmentResponse
    previous_slot: ReleaseResult


class CancelAppointmentResponse(BaseModel):
    appointment_id: int
    released_slot: ReleaseResult


def _book(db: Session, owner_id: int, data: BookAppointmentRequest, clock: SchedulingClock):
    ensure_database_ready()

    try:
        return book_appointment(
            db,
            owner_id,
            clock,
            slot_id=data.slot_id,
            start=data.start_time,
            duration_minutes=data.duration_minutes,
            consultation_type_id=data.consultation_type_id,
            details=data.details(),
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: BookAppointmentRequest,
    owner: Professional = Depends(get_current_owner),
    db: Session = Depends(get_db),
    clock: SchedulingClock = Depends(get_clock),
):
    return _book(db, owner.id, data, clock)


@router.post('/public', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_public_appointment(
    data: PublicBookAppointmentRequest,
    db: Session = Depends(get_db),
    clock: SchedulingClock = Depends(get_clock),
):
    if data.slot_id is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Public bookings must use start_time.',
        )

    try:
        owner = db.get(Professional, data.owner_id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc
    if owner is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Professional not found.',
        )

    return _book(db, owner.id, data, clock)


@router.get('', response_model=list[AppointmentResponse])
def list_my_appointments(
    owner: Professional = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return list_appointments(db, owner.id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/reminders/due', response_model=list[AppointmentResponse])
def list_due_appointment_reminders(
    kind: str = Query(...),
    window_start: datetime = Query(...),
    window_end: datetime = Query(...),
    owner: Professional = Depends(get_current_owner),
    db: Session = Depends(get_db),
    clock: SchedulingClock = Depends(get_clock),
):
    ensure_database_ready()

    try:
        return list_due_reminders(db, kind, window_start, window_end, clock, owner_id=owner.id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    owner: Professional = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return get_owned_appointment(db, owner.id, appointment_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.patch('/{appointment_id}/reschedule', response_model=RescheduleAppointmentResponse)
def reschedule_my_appointment(
    appointment_id: int,
    data: RescheduleAppointmentRequest,
    owner: Professional = Depends(get_current_owner),
    db: Session = Depends(get_db),
    clock: SchedulingClock = Depends(get_clock),
):
    ensure_database_ready()

    try:
        result = reschedule_appointment(
            db,
            owner.id,
            appointment_id,
            clock,
            slot_id=data.slot_id,
            start=data.start_time,
            duration_minutes=data.duration_minutes,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return RescheduleAppointmentResponse(
        appointment=AppointmentResponse.model_validate(result.appointment),
        previous_slot=result.release,
    )


@router.delete('/{appointment_id}', response_model=CancelAppointmentResponse)
def cancel_my_appointment(
    appointment_id: int,
    owner: Professional = Depends(get_current_owner),
    db: Session = Depends(get_db),
    clock: SchedulingClock = Depends(get_clock),
):
    ensure_database_ready()

    try:
        result = cancel_appointment(db, owner.id, appointment_id, clock)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return CancelAppointmentResponse(appointment_id=result.appointment_id, released_slot=result.release)


@router.post('/{appointment_id}/reminders/{kind}', response_model=AppointmentResponse)
def mark_appointment_reminder_sent(
    appointment_id: int,
    kind: str,
    owner: Professional = Depends(get_current_owner),
    db: Session = Depends(get_db),
    clock: SchedulingClock = Depends(get_clock),
):
    ensure_database_ready()

    try:
        return mark_reminder_sent(db, owner.id, appointment_id, kind, clock)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc
