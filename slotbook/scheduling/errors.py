"""
Exceptions raised by the scheduling engine.

Raised in the scheduling services and translated into HTTP responses by the
route modules. Each error belongs to exactly one category so callers can
decide whether to retry:

- validation: caller input is wrong, never retry as-is
- conflict: expected under concurrency, re-fetch availability and retry
- authorization: hard failure, never retry
- not found: the referenced row does not exist (any more)
"""

from datetime import datetime


class SchedulingError(Exception):
    """Base exception for all scheduling engine errors."""


class SchedulingValidationError(SchedulingError):
    """Caller supplied input the engine cannot accept."""


class SchedulingConflictError(SchedulingError):
    """The requested time is taken; retryable after re-reading availability."""


class SchedulingAuthorizationError(SchedulingError):
    """The requester does not own the resource."""


class SchedulingNotFoundError(SchedulingError):
    """A referenced slot, appointment or consultation type does not exist."""


class MisalignedRange(SchedulingValidationError):
    """Start or end is not on a slot boundary.

    Carries the instants as parsed so the caller can see what was read.
    """

    def __init__(self, start: datetime, end: datetime, slot_minutes: int):
        self.start = start
        self.end = end
        self.slot_minutes = slot_minutes
        super().__init__(
            f'Range {start.isoformat()} - {end.isoformat()} must start and end on '
            f'{slot_minutes}-minute boundaries with zero seconds.'
        )


class RangeTooSmall(SchedulingValidationError):
    """The range does not cover a single slot."""


class InvalidDuration(SchedulingValidationError):
    """Requested duration is missing or not positive."""


class InactiveConsultationType(SchedulingValidationError):
    """The consultation type exists but is no longer offered."""


class AlreadyBooked(SchedulingConflictError):
    """Another active appointment already starts at the requested instant."""


class InsufficientAvailability(SchedulingConflictError):
    """At least one of the contiguous slots needed for the booking is missing."""

    def __init__(self, missing_start: datetime, slots_needed: int):
        self.missing_start = missing_start
        self.slots_needed = slots_needed
        super().__init__(
            f'No availability at {missing_start.isoformat()}; '
            f'{slots_needed} contiguous slot(s) are required.'
        )


class NotOwner(SchedulingAuthorizationError):
    """The resource belongs to a different owner than the requester."""


class SlotNotFound(SchedulingNotFoundError):
    pass


class AppointmentNotFound(SchedulingNotFoundError):
    pass


class ConsultationTypeNotFound(SchedulingNotFoundError):
    pass


class TimezoneUnavailableError(RuntimeError):
    """The scheduling timezone could not be loaded. Fatal."""
