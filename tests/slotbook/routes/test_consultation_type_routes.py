import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from slotbook.routes.consultation_type_routes import (
    CreateConsultationTypeRequest,
    UpdateConsultationTypeRequest,
    create_consultation_type,
    delete_consultation_type,
    list_consultation_types,
    update_consultation_type,
)


def test_create_consultation_type_defaults_to_sixty_minutes(db, owner) -> None:
    consultation_type = create_consultation_type(
        CreateConsultationTypeRequest(name='  General  '),
        owner=owner,
        db=db,
    )

    assert consultation_type.name == 'General'
    assert consultation_type.duration_minutes == 60
    assert consultation_type.active is True


@pytest.mark.parametrize(
    'payload',
    [
        {'name': ' '},
        {'name': 'Surgery', 'duration_minutes': 0},
        {'name': 'Surgery', 'price': -1},
    ],
)
def test_create_consultation_type_request_validation(payload: dict) -> None:
    with pytest.raises(ValidationError):
        CreateConsultationTypeRequest(**payload)


def test_consultation_types_are_owner_scoped(db, owner, other_owner) -> None:
    mine = create_consultation_type(CreateConsultationTypeRequest(name='Checkup'), owner=owner, db=db)
    create_consultation_type(CreateConsultationTypeRequest(name='Dental'), owner=other_owner, db=db)

    listed = list_consultation_types(owner=owner, db=db)

    assert [item.id for item in listed] == [mine.id]

    with pytest.raises(HTTPException) as exception_info:
        delete_consultation_type(type_id=mine.id, owner=other_owner, db=db)
    assert exception_info.value.status_code == 404


def test_update_and_delete_consultation_type(db, owner) -> None:
    consultation_type = create_consultation_type(CreateConsultationTypeRequest(name='Checkup'), owner=owner, db=db)

    updated = update_consultation_type(
        type_id=consultation_type.id,
        data=UpdateConsultationTypeRequest(duration_minutes=45, price=25000),
        owner=owner,
        db=db,
    )
    assert updated.duration_minutes == 45
    assert updated.price == 25000
    assert updated.name == 'Checkup'

    delete_consultation_type(type_id=consultation_type.id, owner=owner, db=db)
    assert list_consultation_types(owner=owner, db=db) == []
