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
from slotbook.scheduling.splitter import create_availability, delete_slot, get_owned_slot, list_availability

router = APIRouter(tags=['availability'])


class CreateAvailabilityRequest(BaseModel):
    start: datetime
    end: datetime


class SlotResponse(BaseModel):
    id: int
    owner_id: int
    start_time: datetime
    end_time: datetime

    @field_validator('start_time', 'end_time')
    @classmethod
    def attach_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    class Config:
        from_attributes = True


class SlotRangeResponse(BaseModel):
    start_time: datetime
    end_time: datetime

    @field_validator('start_time', 'end_time')
    @classmethod
    def attach_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class CreateAvailabilityResponse(BaseModel):
    created: list[SlotResponse]
    skipped: list[SlotRangeResponse]
    created_count: int
    skipped_count: int


@router.post('/slots', response_model=CreateAvailabilityResponse, status_code=status.HTTP_201_CREATED)
def create_availability_slots(
    data: CreateAvailabilityRequest,
    owner: Professional = Depends(get_current_owner),
    db: Session = Depends(get_db),
    clock: SchedulingClock = Depends(get_clock),
):
    ensure_database_ready()

    try:
        result = create_availability(db, owner.id, data.start, data.end, clock)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return CreateAvailabilityResponse(
        created=[SlotResponse.model_validate(slot) for slot in result.created],
        skipped=[SlotRangeResponse(start_time=item.start, end_time=item.end) for item in result.skipped],
        created_count=len(result.created),
        skipped_count=len(result.skipped),
    )


@router.get('/slots', response_model=list[SlotResponse])
def list_my_availability(
    as_of: datetime | None = Query(default=None),
    owner: Professional = Depends(get_current_owner),
    db: Session = Depends(get_db),
    clock: SchedulingClock = Depends(get_clock),
):
    ensure_database_ready()

    try:
        return list_availability(db, owner.id, clock, not_expired_as_of=as_of)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/public/{owner_id}', response_model=list[SlotResponse])
def list_public_availability(
    owner_id: int,
    db: Session = Depends(get_db),
    clock: SchedulingClock = Depends(get_clock),
):
    ensure_database_ready()

    try:
        owner = db.get(Professional, owner_id)
        if owner is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Professional not found.',
            )

        return list_availability(db, owner_id, clock)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/slots/{slot_id}', response_model=SlotResponse)
def get_availability_slot(
    slot_id: int,
    owner: Professional = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return get_owned_slot(db, owner.id, slot_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.delete('/slots/{slot_id}', status_code=status.HTTP_204_NO_CONTENT)
def remove_availability_slot(
    slot_id: int,
    owner: Professional = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        delete_slot(db, owner.id, slot_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc
