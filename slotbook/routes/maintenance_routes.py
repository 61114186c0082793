import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from slotbook.auth.dependencies import get_current_owner
from slotbook.database import get_db
from slotbook.models.appointment import Appointment
from slotbook.models.professional import Professional
from slotbook.models.slot import AvailabilitySlot
from slotbook.routes.common import database_unavailable
from slotbook.scheduling.clock import SchedulingClock, get_clock
from slotbook.scheduling.sweeper import run_expiry_sweep

router = APIRouter(tags=['maintenance'])

logger = logging.getLogger(__name__)


class SweepResponse(BaseModel):
    slots_deleted: int
    appointments_deleted: int
    ran_at: datetime


class HealthResponse(BaseModel):
    status: str
    database: str
    available_slots: int
    total_appointments: int
    checked_at: datetime


@router.post('/cleanup-expired', response_model=SweepResponse)
def cleanup_expired(
    owner: Professional = Depends(get_current_owner),
    db: Session = Depends(get_db),
    clock: SchedulingClock = Depends(get_clock),
):
    try:
        result = run_expiry_sweep(db, clock)
    except SQLAlchemyError as exc:
        logger.exception('Manual expiry sweep requested by owner %s failed.', owner.id)
        raise database_unavailable() from exc

    return SweepResponse(
        slots_deleted=result.slots_deleted,
        appointments_deleted=result.appointments_deleted,
        ran_at=datetime.now(timezone.utc),
    )


@router.get('/health', response_model=HealthResponse)
def health(db: Session = Depends(get_db)):
    try:
        db.execute(text('SELECT 1'))
        available_slots = db.scalar(select(func.count()).select_from(AvailabilitySlot))
        total_appointments = db.scalar(select(func.count()).select_from(Appointment))
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={'status': 'unhealthy', 'database': 'unreachable'},
        ) from exc

    return HealthResponse(
        status='healthy',
        database='connected',
        available_slots=available_slots or 0,
        total_appointments=total_appointments or 0,
        checked_at=datetime.now(timezone.utc),
    )
