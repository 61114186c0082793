"""Consultation type model definitions."""

from sqlalchemy import Column, Integer, String, Boolean, ForeignKey
from slotbook.database import Base


class ConsultationType(Base):
    """A kind of appointment an owner offers; defines how long a booking lasts."""
    __tablename__ = "consultation_types"

    id = Column(Integer, primary_key=True)
    owner_id = Column(Integer, ForeignKey("professionals.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=60)
    price = Column(Integer)  # cents
    description = Column(String)
    active = Column(Boolean, default=True, nullable=False)
