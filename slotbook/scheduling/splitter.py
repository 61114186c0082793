"""
Slot splitting and availability store operations.

Turns an owner-supplied [start, end) range into aligned slot rows. Duplicate
slots are skipped rather than failing the batch, so a range picker that
overlaps existing availability still creates whatever is missing.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from slotbook.models.slot import AvailabilitySlot
from slotbook.scheduling.clock import SchedulingClock
from slotbook.scheduling.errors import MisalignedRange, NotOwner, RangeTooSmall, SlotNotFound

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotRange:
    start: datetime
    end: datetime


@dataclass
class CreateAvailabilityResult:
    created: list[AvailabilitySlot] = field(default_factory=list)
    skipped: list[SlotRange] = field(default_factory=list)


def split_range(start: datetime, end: datetime, clock: SchedulingClock) -> list[SlotRange]:
    """Split ``[start, end)`` into storage-time slot ranges, validating alignment."""
    if not clock.is_aligned(start) or not clock.is_aligned(end):
        raise MisalignedRange(start, end, clock.slot_minutes)

    storage_start = clock.to_storage(start)
    storage_end = clock.to_storage(end)
    step = timedelta(minutes=clock.slot_minutes)

    if storage_end - storage_start < step:
        raise RangeTooSmall(f'The provided range is smaller than {clock.slot_minutes} minutes.')

    ranges: list[SlotRange] = []
    current = storage_start
    while current + step <= storage_end:
        ranges.append(SlotRange(start=current, end=current + step))
        current += step

    return ranges


def create_availability(
    db: Session,
    owner_id: int,
    start: datetime,
    end: datetime,
    clock: SchedulingClock,
) -> CreateAvailabilityResult:
    ranges = split_range(start, end, clock)
    result = CreateAvailabilityResult()

    try:
        existing = {
            (slot_start, slot_end)
            for slot_start, slot_end in db.query(AvailabilitySlot.start_time, AvailabilitySlot.end_time).filter(
                AvailabilitySlot.owner_id == owner_id,
                AvailabilitySlot.start_time >= ranges[0].start,
                AvailabilitySlot.start_time < ranges[-1].end,
            )
        }

        for slot_range in ranges:
            if (slot_range.start, slot_range.end) in existing:
                result.skipped.append(slot_range)
                continue

            slot = AvailabilitySlot(owner_id=owner_id, start_time=slot_range.start, end_time=slot_range.end)
            try:
                with db.begin_nested():
                    db.add(slot)
                    db.flush()
            except IntegrityError:
                # created concurrently since the lookup above
                result.skipped.append(slot_range)
                continue

            result.created.append(slot)

        db.commit()
    except Exception:
        db.rollback()
        raise

    for slot in result.created:
        db.refresh(slot)

    logger.info(
        'Availability for owner %s: %d slot(s) created, %d skipped.',
        owner_id,
        len(result.created),
        len(result.skipped),
    )
    return result


def list_availability(
    db: Session,
    owner_id: int,
    clock: SchedulingClock,
    not_expired_as_of: datetime | None = None,
) -> list[AvailabilitySlot]:
    cutoff = clock.storage_cutoff(not_expired_as_of)
    return db.query(AvailabilitySlot).filter(
        AvailabilitySlot.owner_id == owner_id,
        AvailabilitySlot.end_time > cutoff,
    ).order_by(AvailabilitySlot.start_time.asc()).all()


def get_owned_slot(db: Session, owner_id: int, slot_id: int) -> AvailabilitySlot:
    slot = db.get(AvailabilitySlot, slot_id)
    if slot is None:
        raise SlotNotFound('Availability slot not found.')
    if slot.owner_id != owner_id:
        raise NotOwner('This availability slot belongs to another professional.')
    return slot


def delete_slot(db: Session, owner_id: int, slot_id: int) -> None:
    try:
        slot = get_owned_slot(db, owner_id, slot_id)
        db.delete(slot)
        db.commit()
    except Exception:
        db.rollback()
        raise
