"""
Reservation engine.

``reserve`` converts a run of contiguous slots into consumed time for one
appointment; ``release`` puts a single slot back after a cancellation or a
reschedule. Neither commits: both run inside the caller's transaction so the
slot deletions and the appointment write land together or not at all.
"""

import enum
import logging
import math
from datetime import datetime, timedelta

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from slotbook.models.appointment import Appointment, STATUS_ACTIVE
from slotbook.models.slot import AvailabilitySlot
from slotbook.scheduling.errors import InsufficientAvailability, InvalidDuration

logger = logging.getLogger(__name__)


class ReleaseResult(str, enum.Enum):
    RESTORED = 'restored'
    SKIPPED_COLLISION = 'skipped_collision'
    SKIPPED_ALREADY_EXISTS = 'skipped_already_exists'
    FAILED = 'failed'


def slots_needed(duration_minutes: int, slot_minutes: int) -> int:
    if duration_minutes is None or duration_minutes <= 0:
        raise InvalidDuration('Duration must be a positive number of minutes.')
    return math.ceil(duration_minutes / slot_minutes)


def expected_slot_ranges(start: datetime, duration_minutes: int, slot_minutes: int) -> list[tuple[datetime, datetime]]:
    step = timedelta(minutes=slot_minutes)
    return [
        (start + step * index, start + step * (index + 1))
        for index in range(slots_needed(duration_minutes, slot_minutes))
    ]


def reserve(
    db: Session,
    owner_id: int,
    start: datetime,
    duration_minutes: int,
    slot_minutes: int,
) -> list[tuple[datetime, datetime]]:
    """Consume every slot covering ``[start, start + duration)``.

    ``start`` is a storage (naive UTC) instant. Raises
    ``InsufficientAvailability`` if any slot is missing; the caller must roll
    back in that case.
    """
    expected = expected_slot_ranges(start, duration_minutes, slot_minutes)

    present = {
        (slot_start, slot_end)
        for slot_start, slot_end in db.query(AvailabilitySlot.start_time, AvailabilitySlot.end_time).filter(
            AvailabilitySlot.owner_id == owner_id,
            AvailabilitySlot.start_time >= expected[0][0],
            AvailabilitySlot.start_time < expected[-1][1],
        )
    }
    for slot_start, slot_end in expected:
        if (slot_start, slot_end) not in present:
            raise InsufficientAvailability(slot_start, len(expected))

    for slot_start, slot_end in expected:
        deleted = db.execute(
            delete(AvailabilitySlot).where(
                AvailabilitySlot.owner_id == owner_id,
                AvailabilitySlot.start_time == slot_start,
                AvailabilitySlot.end_time == slot_end,
            )
        )
        # zero rows means a concurrent transaction consumed or expired it first
        if deleted.rowcount != 1:
            raise InsufficientAvailability(slot_start, len(expected))

    return expected


def find_colliding_appointment(
    db: Session,
    owner_id: int,
    start: datetime,
    end: datetime,
) -> Appointment | None:
    return db.query(Appointment).filter(
        Appointment.owner_id == owner_id,
        Appointment.status == STATUS_ACTIVE,
        Appointment.start_time < end,
        Appointment.end_time > start,
    ).first()


def release(
    db: Session,
    owner_id: int,
    start: datetime,
    slot_minutes: int,
) -> ReleaseResult:
    """Best-effort restore of the single slot starting at ``start``.

    Runs in a savepoint; a failure here is reported, never raised.
    """
    end = start + timedelta(minutes=slot_minutes)

    try:
        with db.begin_nested():
            existing = db.query(AvailabilitySlot.id).filter(
                AvailabilitySlot.owner_id == owner_id,
                AvailabilitySlot.start_time == start,
            ).first()
            if existing:
                return ReleaseResult.SKIPPED_ALREADY_EXISTS

            if find_colliding_appointment(db, owner_id, start, end):
                return ReleaseResult.SKIPPED_COLLISION

            db.add(AvailabilitySlot(owner_id=owner_id, start_time=start, end_time=end))
            db.flush()
    except IntegrityError:
        return ReleaseResult.SKIPPED_ALREADY_EXISTS
    except SQLAlchemyError:
        logger.warning('Could not restore slot %s for owner %s.', start.isoformat(), owner_id, exc_info=True)
        return ReleaseResult.FAILED

    return ReleaseResult.RESTORED
