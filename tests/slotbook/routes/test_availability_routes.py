from datetime import datetime, timezone

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from slotbook.routes.availability_routes import (
    CreateAvailabilityRequest,
    create_availability_slots,
    get_availability_slot,
    list_my_availability,
    list_public_availability,
    remove_availability_slot,
)


@pytest.fixture(autouse=True)
def skip_schema_checks(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('slotbook.routes.availability_routes.ensure_database_ready', lambda: None)


def _request(start: str, end: str) -> CreateAvailabilityRequest:
    return CreateAvailabilityRequest(start=start, end=end)


def test_create_availability_request_requires_both_bounds() -> None:
    with pytest.raises(ValidationError):
        CreateAvailabilityRequest(start='2024-01-01T09:00:00Z')


@pytest.mark.parametrize(
    ('start', 'end'),
    [
        ('2024-01-01T10:00:00Z', '2024-01-01T09:00:00Z'),
        ('2024-01-01T09:00:00Z', '2024-01-01T09:00:00Z'),
    ],
)
def test_create_availability_slots_rejects_empty_or_inverted_range(db, owner, clock, start: str, end: str) -> None:
    with pytest.raises(HTTPException) as exception_info:
        create_availability_slots(_request(start, end), owner=owner, db=db, clock=clock)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'The provided range is smaller than 15 minutes.'


def test_create_availability_slots_accepts_mixed_naive_and_aware_bounds(db, owner, clock) -> None:
    response = create_availability_slots(
        _request('2024-01-01T09:00:00', '2024-01-01T10:00:00Z'),
        owner=owner,
        db=db,
        clock=clock,
    )

    assert response.created_count == 4
    assert response.created[0].start_time == datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


def test_create_availability_slots_reports_created_and_skipped(db, owner, clock) -> None:
    create_availability_slots(_request('2024-01-01T09:00:00Z', '2024-01-01T09:30:00Z'), owner=owner, db=db, clock=clock)

    response = create_availability_slots(
        _request('2024-01-01T09:00:00Z', '2024-01-01T10:00:00Z'),
        owner=owner,
        db=db,
        clock=clock,
    )

    assert response.created_count == 2
    assert response.skipped_count == 2
    assert response.created[0].start_time == datetime(2024, 1, 1, 9, 30, tzinfo=timezone.utc)
    assert response.skipped[0].start_time == datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


def test_create_availability_slots_returns_parsed_range_when_misaligned(db, owner, clock) -> None:
    with pytest.raises(HTTPException) as exception_info:
        create_availability_slots(
            _request('2024-01-01T09:10:00Z', '2024-01-01T10:00:00Z'),
            owner=owner,
            db=db,
            clock=clock,
        )

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail['parsed_start'] == '2024-01-01T09:10:00+00:00'
    assert exception_info.value.detail['slot_minutes'] == 15


def test_list_my_availability_returns_only_open_slots(db, owner, other_owner, clock) -> None:
    create_availability_slots(_request('2024-01-01T09:00:00Z', '2024-01-01T09:30:00Z'), owner=owner, db=db, clock=clock)
    create_availability_slots(
        _request('2024-01-01T09:00:00Z', '2024-01-01T09:30:00Z'),
        owner=other_owner,
        db=db,
        clock=clock,
    )

    slots = list_my_availability(as_of=None, owner=owner, db=db, clock=clock)

    assert len(slots) == 2
    assert {slot.owner_id for slot in slots} == {owner.id}


def test_list_public_availability_requires_known_owner(db, clock) -> None:
    with pytest.raises(HTTPException) as exception_info:
        list_public_availability(owner_id=404, db=db, clock=clock)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Professional not found.'


def test_slot_endpoints_forbid_other_owners(db, owner, other_owner, clock) -> None:
    response = create_availability_slots(
        _request('2024-01-01T09:00:00Z', '2024-01-01T09:15:00Z'),
        owner=owner,
        db=db,
        clock=clock,
    )
    slot_id = response.created[0].id

    with pytest.raises(HTTPException) as get_info:
        get_availability_slot(slot_id=slot_id, owner=other_owner, db=db)
    with pytest.raises(HTTPException) as delete_info:
        remove_availability_slot(slot_id=slot_id, owner=other_owner, db=db)

    assert get_info.value.status_code == 403
    assert delete_info.value.status_code == 403


def test_remove_availability_slot_returns_not_found_when_missing(db, owner) -> None:
    with pytest.raises(HTTPException) as exception_info:
        remove_availability_slot(slot_id=999, owner=owner, db=db)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Availability slot not found.'
