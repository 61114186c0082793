from datetime import datetime, timedelta, timezone

import pytest

from slotbook.scheduling.clock import SchedulingClock, from_storage, load_zone, to_storage
from slotbook.scheduling.errors import TimezoneUnavailableError


def _clock_at(moment: datetime, zone: str = 'UTC') -> SchedulingClock:
    return SchedulingClock(zone, slot_minutes=15, tolerance_ms=999, now_fn=lambda: moment)


def test_now_is_expressed_in_scheduling_timezone() -> None:
    clock = _clock_at(datetime(2024, 1, 1, 12, 7, tzinfo=timezone.utc), zone='America/Santiago')

    now = clock.now()

    assert now.utcoffset() == timedelta(hours=-3)
    assert (now.hour, now.minute) == (9, 7)


def test_last_quarter_boundary_zeroes_seconds_and_micros() -> None:
    clock = _clock_at(datetime(2024, 1, 1, 10, 52, 41, 500000, tzinfo=timezone.utc))

    assert clock.last_quarter_boundary() == datetime(2024, 1, 1, 10, 45, tzinfo=timezone.utc)


def test_last_quarter_boundary_on_exact_boundary_is_unchanged() -> None:
    clock = _clock_at(datetime(2024, 1, 1, 10, 30, tzinfo=timezone.utc))

    assert clock.last_quarter_boundary() == datetime(2024, 1, 1, 10, 30, tzinfo=timezone.utc)


def test_cutoff_adds_tolerance_window() -> None:
    clock = _clock_at(datetime(2024, 1, 1, 9, 20, tzinfo=timezone.utc))

    assert clock.cutoff() == datetime(2024, 1, 1, 9, 15, 0, 999000, tzinfo=timezone.utc)
    assert clock.storage_cutoff() == datetime(2024, 1, 1, 9, 15, 0, 999000)


def test_next_quarter_boundary() -> None:
    clock = _clock_at(datetime(2024, 1, 1, 9, 59, 59, tzinfo=timezone.utc))

    assert clock.next_quarter_boundary() == datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


def test_naive_instants_are_read_as_scheduling_wall_time() -> None:
    clock = _clock_at(datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc), zone='America/Santiago')

    assert clock.to_storage(datetime(2024, 1, 1, 9, 0)) == datetime(2024, 1, 1, 12, 0)
    assert clock.to_storage(datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)) == datetime(2024, 1, 1, 9, 0)


@pytest.mark.parametrize(
    ('value', 'expected'),
    [
        (datetime(2024, 1, 1, 9, 0), True),
        (datetime(2024, 1, 1, 9, 45), True),
        (datetime(2024, 1, 1, 9, 10), False),
        (datetime(2024, 1, 1, 9, 15, 1), False),
        (datetime(2024, 1, 1, 9, 15, 0, 1), False),
    ],
)
def test_is_aligned(value: datetime, expected: bool) -> None:
    clock = _clock_at(datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc))

    assert clock.is_aligned(value) is expected


def test_unknown_timezone_fails_loudly() -> None:
    with pytest.raises(TimezoneUnavailableError):
        load_zone('Mars/Olympus_Mons')

    with pytest.raises(TimezoneUnavailableError):
        SchedulingClock('Mars/Olympus_Mons')


def test_storage_round_trip_attaches_utc() -> None:
    stored = to_storage(datetime(2024, 1, 1, 9, 0, tzinfo=timezone(timedelta(hours=-3))), load_zone('UTC'))

    assert stored == datetime(2024, 1, 1, 12, 0)
    assert from_storage(stored) == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
