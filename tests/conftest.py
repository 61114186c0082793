import os
from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')
os.environ.setdefault('SWEEPER_ENABLED', 'false')

from slotbook.database import Base  # noqa: E402
from slotbook.models.appointment import Appointment  # noqa: E402
from slotbook.models.consultation_type import ConsultationType  # noqa: E402
from slotbook.models.professional import Professional  # noqa: E402
from slotbook.models.slot import AvailabilitySlot  # noqa: E402
from slotbook.scheduling.clock import SchedulingClock  # noqa: E402

FIXED_NOW = datetime(2024, 1, 1, 8, 7, 30, tzinfo=timezone.utc)

TABLES = [
    Professional.__table__,
    ConsultationType.__table__,
    AvailabilitySlot.__table__,
    Appointment.__table__,
]


@pytest.fixture
def engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine, tables=TABLES)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine, tables=list(reversed(TABLES)))
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock() -> SchedulingClock:
    return SchedulingClock('UTC', slot_minutes=15, tolerance_ms=999, now_fn=lambda: FIXED_NOW)


def _make_owner(db, email: str) -> Professional:
    owner = Professional(email=email, name=email.split('@')[0])
    db.add(owner)
    db.commit()
    db.refresh(owner)
    return owner


@pytest.fixture
def owner(db) -> Professional:
    return _make_owner(db, 'vet@example.com')


@pytest.fixture
def other_owner(db) -> Professional:
    return _make_owner(db, 'other@example.com')
