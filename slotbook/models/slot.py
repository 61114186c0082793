"""Availability slot model definitions."""

from datetime import datetime

from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint
from slotbook.database import Base


class AvailabilitySlot(Base):
    """Represents one indivisible bookable unit of an owner's calendar.

    Instants are stored as naive UTC. ``end_time`` is always ``start_time``
    plus one slot unit.
    """
    __tablename__ = "availability_slots"
    __table_args__ = (
        UniqueConstraint("owner_id", "start_time", "end_time", name="uq_availability_slots_owner_range"),
    )

    id = Column(Integer, primary_key=True)
    owner_id = Column(Integer, ForeignKey("professionals.id"), nullable=False, index=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
