from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from slotbook.auth.dependencies import get_current_owner
from slotbook.core import config
from slotbook.database import get_db
from slotbook.models.consultation_type import ConsultationType
from slotbook.models.professional import Professional
from slotbook.routes.common import database_unavailable

router = APIRouter(tags=['consultation-types'])


def _validate_duration(value: int | None) -> int | None:
    if value is not None and value <= 0:
        raise ValueError('Duration must be a positive number of minutes.')
    return value


def _validate_price(value: int | None) -> int | None:
    if value is not None and value < 0:
        raise ValueError('Price cannot be negative.')
    return value


class CreateConsultationTypeRequest(BaseModel):
    name: str
    duration_minutes: int = config.DEFAULT_CONSULTATION_TYPE_DURATION_MINUTES
    price: int | None = None
    description: str | None = None
    active: bool = True

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Name is required.')
        return normalized

    @field_validator('duration_minutes')
    @classmethod
    def validate_duration(cls, value: int | None) -> int | None:
        return _validate_duration(value)

    @field_validator('price')
    @classmethod
    def validate_price(cls, value: int | None) -> int | None:
        return _validate_price(value)


class UpdateConsultationTypeRequest(BaseModel):
    name: str | None = None
    duration_minutes: int | None = None
    price: int | None = None
    description: str | None = None
    active: bool | None = None

    @field_validator('duration_minutes')
    @classmethod
    def validate_duration(cls, value: int | None) -> int | None:
        return _validate_duration(value)

    @field_validator('price')
    @classmethod
    def validate_price(cls, value: int | None) -> int | None:
        return _validate_price(value)


class ConsultationTypeResponse(BaseModel):
    id: int
    owner_id: int
    name: str
    duration_minutes: int
    price: int | None = None
    description: str | None = None
    active: bool

    class Config:
        from_attributes = True


def _get_owned_type(db: Session, owner_id: int, type_id: int) -> ConsultationType:
    consultation_type = db.query(ConsultationType).filter(
        ConsultationType.id == type_id,
        ConsultationType.owner_id == owner_id,
    ).first()
    if consultation_type is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Consultation type not found.',
        )
    return consultation_type


@router.get('', response_model=list[ConsultationTypeResponse])
def list_consultation_types(
    owner: Professional = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    try:
        return db.query(ConsultationType).filter(
            ConsultationType.owner_id == owner.id,
        ).order_by(ConsultationType.name.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('', response_model=ConsultationTypeResponse, status_code=status.HTTP_201_CREATED)
def create_consultation_type(
    data: CreateConsultationTypeRequest,
    owner: Professional = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    try:
        consultation_type = ConsultationType(owner_id=owner.id, **data.model_dump())
        db.add(consultation_type)
        db.commit()
        db.refresh(consultation_type)
        return consultation_type
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.patch('/{type_id}', response_model=ConsultationTypeResponse)
def update_consultation_type(
    type_id: int,
    data: UpdateConsultationTypeRequest,
    owner: Professional = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    try:
        consultation_type = _get_owned_type(db, owner.id, type_id)
        for field_name, value in data.model_dump(exclude_unset=True).items():
            if field_name == 'name' and not (value or '').strip():
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail='Name cannot be blank.',
                )
            setattr(consultation_type, field_name, value)
        db.commit()
        db.refresh(consultation_type)
        return consultation_type
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.delete('/{type_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_consultation_type(
    type_id: int,
    owner: Professional = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    try:
        consultation_type = _get_owned_type(db, owner.id, type_id)
        db.delete(consultation_type)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
