"""Professional (calendar owner) model definitions."""

from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime
from slotbook.database import Base


class Professional(Base):
    """Represents the owner of a calendar; every slot and appointment belongs to one."""
    __tablename__ = "professionals"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String)
    hashed_password = Column(String)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
