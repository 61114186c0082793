"""
Expiry sweeper.

Background task that runs at every slot boundary of the scheduling clock:
- deletes availability slots whose end is at or before the cutoff
- deletes appointments that started more than the retention window ago

The two deletions commit separately; a sweep is always safe to repeat.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from sqlalchemy import delete
from sqlalchemy.orm import Session

from slotbook.core import config
from slotbook.models.appointment import Appointment
from slotbook.models.slot import AvailabilitySlot
from slotbook.scheduling.clock import SchedulingClock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepResult:
    slots_deleted: int
    appointments_deleted: int


def delete_expired_slots(db: Session, clock: SchedulingClock) -> int:
    cutoff = clock.storage_cutoff()
    try:
        result = db.execute(
            delete(AvailabilitySlot)
            .where(AvailabilitySlot.end_time <= cutoff)
            .execution_options(synchronize_session=False)
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    return result.rowcount


def delete_stale_appointments(db: Session, clock: SchedulingClock, retention_days: int) -> int:
    retention_start = clock.storage_now() - timedelta(days=retention_days)
    try:
        result = db.execute(
            delete(Appointment)
            .where(Appointment.start_time < retention_start)
            .execution_options(synchronize_session=False)
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    return result.rowcount


def run_expiry_sweep(
    db: Session,
    clock: SchedulingClock,
    retention_days: int = config.APPOINTMENT_RETENTION_DAYS,
) -> SweepResult:
    slots_deleted = delete_expired_slots(db, clock)
    appointments_deleted = delete_stale_appointments(db, clock, retention_days)
    return SweepResult(slots_deleted=slots_deleted, appointments_deleted=appointments_deleted)


class ExpirySweeper:
    """Runs ``run_expiry_sweep`` on a daemon thread, aligned to slot boundaries."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: SchedulingClock,
        interval_minutes: int = config.SWEEP_INTERVAL_MINUTES,
        retention_days: int = config.APPOINTMENT_RETENTION_DAYS,
    ):
        self._session_factory = session_factory
        self._clock = clock
        self._interval = timedelta(minutes=interval_minutes)
        self._retention_days = retention_days
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self.next_run: datetime | None = None

    def run_once(self) -> SweepResult:
        db = self._session_factory()
        try:
            result = run_expiry_sweep(db, self._clock, self._retention_days)
        finally:
            db.close()

        logger.info(
            'Expiry sweep removed %d slot(s) and %d appointment(s).',
            result.slots_deleted,
            result.appointments_deleted,
        )
        return result

    def schedule_next(self, now: datetime | None = None) -> datetime:
        now = (now or self._clock.now()).astimezone(timezone.utc)
        if self.next_run is not None:
            candidate = self.next_run + self._interval
            if candidate > now:
                self.next_run = candidate
                return self.next_run
        # first tick, or we fell behind: realign to the next boundary
        self.next_run = self._clock.next_quarter_boundary(now).astimezone(timezone.utc)
        return self.next_run

    def tick(self) -> SweepResult | None:
        try:
            return self.run_once()
        except Exception:
            logger.exception('Expiry sweep failed; retrying on the next tick.')
            return None

    def _run(self) -> None:
        while True:
            next_run = self.schedule_next()
            delay = (next_run - self._clock.now().astimezone(timezone.utc)).total_seconds()
            if self._stop_event.wait(max(delay, 0)):
                return
            self.tick()

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self.next_run = None
        self._thread = threading.Thread(target=self._run, name='expiry-sweeper', daemon=True)
        self._thread.start()
        logger.info('Expiry sweeper started; every %s, aligned to slot boundaries.', self._interval)

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
