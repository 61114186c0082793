import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from slotbook.auth import jwt_handler
from slotbook.auth.dependencies import get_current_owner


def _credentials(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme='Bearer', credentials=token)


def test_access_token_round_trip_carries_owner_identity() -> None:
    token = jwt_handler.create_access_token('vet@example.com', 7)

    payload = jwt_handler.decode_access_token(token)

    assert payload['sub'] == 'vet@example.com'
    assert payload['owner_id'] == 7


def test_get_current_owner_resolves_professional(db, owner) -> None:
    token = jwt_handler.create_access_token(owner.email, owner.id)

    resolved = get_current_owner(credentials=_credentials(token), db=db)

    assert resolved.id == owner.id


def test_get_current_owner_rejects_garbage_token(db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_current_owner(credentials=_credentials('not-a-jwt'), db=db)

    assert exception_info.value.status_code == 401
    assert exception_info.value.detail == 'Invalid token'


def test_get_current_owner_rejects_unknown_professional(db) -> None:
    token = jwt_handler.create_access_token('ghost@example.com', 99)

    with pytest.raises(HTTPException) as exception_info:
        get_current_owner(credentials=_credentials(token), db=db)

    assert exception_info.value.status_code == 401
    assert exception_info.value.detail == 'Professional not found'
