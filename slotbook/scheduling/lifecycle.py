"""
Appointment lifecycle: book, reschedule, cancel, reminder flags.

Each mutating call is one unit of work on the given session: it either
commits the appointment change together with its slot consumption, or rolls
everything back and re-raises. Slot restoration after a cancel or reschedule
is the single best-effort step; its outcome is returned, never raised.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from slotbook.core import config
from slotbook.models.appointment import Appointment, STATUS_ACTIVE
from slotbook.models.consultation_type import ConsultationType
from slotbook.scheduling.clock import SchedulingClock
from slotbook.scheduling.errors import (
    AlreadyBooked,
    AppointmentNotFound,
    ConsultationTypeNotFound,
    InactiveConsultationType,
    InvalidDuration,
    MisalignedRange,
    NotOwner,
    SchedulingValidationError,
)
from slotbook.scheduling.reservation import ReleaseResult, release, reserve
from slotbook.scheduling.splitter import get_owned_slot

logger = logging.getLogger(__name__)

REMINDER_KINDS = ('24h', '1h')


@dataclass
class BookingDetails:
    client_name: str | None = None
    client_email: str | None = None
    client_phone: str | None = None
    reason: str | None = None


@dataclass
class RescheduleResult:
    appointment: Appointment
    release: ReleaseResult


@dataclass
class CancelResult:
    appointment_id: int
    release: ReleaseResult


def resolve_start(
    db: Session,
    owner_id: int,
    clock: SchedulingClock,
    slot_id: int | None = None,
    start: datetime | None = None,
) -> datetime:
    """Storage instant the booking should start at. A slot id wins over a raw instant."""
    if slot_id is not None:
        return get_owned_slot(db, owner_id, slot_id).start_time

    if start is None:
        raise SchedulingValidationError('Either slot_id or start_time is required.')

    if not clock.is_aligned(start):
        raise MisalignedRange(start, start + timedelta(minutes=clock.slot_minutes), clock.slot_minutes)

    return clock.to_storage(start)


def resolve_duration(
    db: Session,
    owner_id: int,
    duration_minutes: int | None = None,
    consultation_type_id: int | None = None,
) -> int:
    """Booking length in minutes: hint, then consultation type, then the default.

    A consultation type is checked whenever one is given, even if the hint
    decides the length, since its id is stored on the appointment.
    """
    consultation_type = None
    if consultation_type_id is not None:
        consultation_type = db.get(ConsultationType, consultation_type_id)
        if consultation_type is None:
            raise ConsultationTypeNotFound('Consultation type not found.')
        if consultation_type.owner_id != owner_id:
            raise NotOwner('This consultation type belongs to another professional.')
        if not consultation_type.active:
            raise InactiveConsultationType('This consultation type is no longer offered.')

    if duration_minutes is not None:
        if duration_minutes <= 0:
            raise InvalidDuration('Duration must be a positive number of minutes.')
        return duration_minutes

    if consultation_type is not None:
        return consultation_type.duration_minutes

    return config.DEFAULT_APPOINTMENT_DURATION_MINUTES


def get_owned_appointment(db: Session, owner_id: int, appointment_id: int) -> Appointment:
    appointment = db.get(Appointment, appointment_id)
    if appointment is None or appointment.status != STATUS_ACTIVE:
        raise AppointmentNotFound('Appointment not found.')
    if appointment.owner_id != owner_id:
        raise NotOwner('This appointment belongs to another professional.')
    return appointment


def _start_is_taken(db: Session, owner_id: int, start: datetime, exclude_id: int | None = None) -> bool:
    query = db.query(Appointment.id).filter(
        Appointment.owner_id == owner_id,
        Appointment.status == STATUS_ACTIVE,
        Appointment.start_time == start,
    )
    if exclude_id is not None:
        query = query.filter(Appointment.id != exclude_id)
    return query.first() is not None


def _ensure_start_is_free(db: Session, owner_id: int, start: datetime, exclude_id: int | None = None) -> None:
    if _start_is_taken(db, owner_id, start, exclude_id):
        raise AlreadyBooked('Another appointment already starts at this time.')


def _raise_integrity_error(
    db: Session,
    exc: IntegrityError,
    owner_id: int,
    start: datetime | None,
    exclude_id: int | None = None,
):
    """Roll back, then report a lost race for ``start`` as ``AlreadyBooked``.

    Any other constraint failure is re-raised unchanged.
    """
    db.rollback()
    if start is not None and _start_is_taken(db, owner_id, start, exclude_id):
        raise AlreadyBooked('Another appointment already starts at this time.') from exc
    raise exc


def book_appointment(
    db: Session,
    owner_id: int,
    clock: SchedulingClock,
    *,
    slot_id: int | None = None,
    start: datetime | None = None,
    duration_minutes: int | None = None,
    consultation_type_id: int | None = None,
    details: BookingDetails | None = None,
) -> Appointment:
    details = details or BookingDetails()

    start_time = None
    try:
        start_time = resolve_start(db, owner_id, clock, slot_id=slot_id, start=start)
        duration = resolve_duration(db, owner_id, duration_minutes, consultation_type_id)

        _ensure_start_is_free(db, owner_id, start_time)
        reserve(db, owner_id, start_time, duration, clock.slot_minutes)

        appointment = Appointment(
            owner_id=owner_id,
            consultation_type_id=consultation_type_id,
            start_time=start_time,
            end_time=start_time + timedelta(minutes=duration),
            duration_minutes=duration,
            status=STATUS_ACTIVE,
            client_name=details.client_name,
            client_email=details.client_email,
            client_phone=details.client_phone,
            reason=details.reason,
        )
        db.add(appointment)
        db.flush()
        db.commit()
    except IntegrityError as exc:
        _raise_integrity_error(db, exc, owner_id, start_time)
    except Exception:
        db.rollback()
        raise

    db.refresh(appointment)
    logger.info(
        'Booked appointment %s for owner %s at %s (%d min).',
        appointment.id,
        owner_id,
        appointment.start_time.isoformat(),
        duration,
    )
    return appointment


def reschedule_appointment(
    db: Session,
    owner_id: int,
    appointment_id: int,
    clock: SchedulingClock,
    *,
    slot_id: int | None = None,
    start: datetime | None = None,
    duration_minutes: int | None = None,
) -> RescheduleResult:
    new_start = None
    try:
        appointment = get_owned_appointment(db, owner_id, appointment_id)
        previous_start = appointment.start_time

        new_start = resolve_start(db, owner_id, clock, slot_id=slot_id, start=start)
        if duration_minutes is not None:
            duration = resolve_duration(db, owner_id, duration_minutes)
        else:
            duration = appointment.duration_minutes

        if new_start == previous_start:
            raise SchedulingValidationError('Appointment already starts at this time.')

        _ensure_start_is_free(db, owner_id, new_start, exclude_id=appointment.id)
        reserve(db, owner_id, new_start, duration, clock.slot_minutes)

        appointment.start_time = new_start
        appointment.end_time = new_start + timedelta(minutes=duration)
        appointment.duration_minutes = duration
        appointment.reminder_24h_sent = False
        appointment.reminder_24h_sent_at = None
        appointment.reminder_1h_sent = False
        appointment.reminder_1h_sent_at = None
        db.flush()

        release_result = release(db, owner_id, previous_start, clock.slot_minutes)
        db.commit()
    except IntegrityError as exc:
        _raise_integrity_error(db, exc, owner_id, new_start, exclude_id=appointment_id)
    except Exception:
        db.rollback()
        raise

    db.refresh(appointment)
    logger.info(
        'Rescheduled appointment %s from %s to %s; previous slot %s.',
        appointment.id,
        previous_start.isoformat(),
        appointment.start_time.isoformat(),
        release_result.value,
    )
    return RescheduleResult(appointment=appointment, release=release_result)


def cancel_appointment(
    db: Session,
    owner_id: int,
    appointment_id: int,
    clock: SchedulingClock,
) -> CancelResult:
    try:
        appointment = get_owned_appointment(db, owner_id, appointment_id)
        start_time = appointment.start_time

        db.delete(appointment)
        db.flush()

        release_result = release(db, owner_id, start_time, clock.slot_minutes)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info('Cancelled appointment %s; slot %s.', appointment_id, release_result.value)
    return CancelResult(appointment_id=appointment_id, release=release_result)


def list_appointments(db: Session, owner_id: int) -> list[Appointment]:
    return db.query(Appointment).filter(
        Appointment.owner_id == owner_id,
        Appointment.status == STATUS_ACTIVE,
    ).order_by(Appointment.start_time.asc()).all()


def mark_reminder_sent(
    db: Session,
    owner_id: int,
    appointment_id: int,
    kind: str,
    clock: SchedulingClock,
) -> Appointment:
    """Set a reminder flag. Repeated calls keep the first timestamp."""
    if kind not in REMINDER_KINDS:
        raise SchedulingValidationError(f'Unknown reminder kind {kind!r}.')

    try:
        appointment = get_owned_appointment(db, owner_id, appointment_id)
        if not getattr(appointment, f'reminder_{kind}_sent'):
            setattr(appointment, f'reminder_{kind}_sent', True)
            setattr(appointment, f'reminder_{kind}_sent_at', clock.storage_now())
            db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(appointment)
    return appointment


def list_due_reminders(
    db: Session,
    kind: str,
    window_start: datetime,
    window_end: datetime,
    clock: SchedulingClock,
    owner_id: int | None = None,
) -> list[Appointment]:
    if kind not in REMINDER_KINDS:
        raise SchedulingValidationError(f'Unknown reminder kind {kind!r}.')

    flag = getattr(Appointment, f'reminder_{kind}_sent')
    query = db.query(Appointment).filter(
        Appointment.status == STATUS_ACTIVE,
        flag.is_(False),
        Appointment.start_time >= clock.to_storage(window_start),
        Appointment.start_time < clock.to_storage(window_end),
    )
    if owner_id is not None:
        query = query.filter(Appointment.owner_id == owner_id)
    return query.order_by(Appointment.start_time.asc()).all()
