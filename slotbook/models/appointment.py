"""Appointment model definitions."""

from datetime import datetime

from sqlalchemy import Column, Integer, DateTime, ForeignKey, String, Boolean, Index, text
from slotbook.database import Base

STATUS_ACTIVE = "active"
STATUS_CANCELLED = "cancelled"


class Appointment(Base):
    """Represents a confirmed booking occupying one or more contiguous slots."""
    __tablename__ = "appointments"
    __table_args__ = (
        Index("idx_appointments_owner_start", "owner_id", "start_time"),
        Index(
            "uq_appointments_active_owner_start",
            "owner_id",
            "start_time",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    id = Column(Integer, primary_key=True)
    owner_id = Column(Integer, ForeignKey("professionals.id"), nullable=False)
    consultation_type_id = Column(Integer, ForeignKey("consultation_types.id", ondelete="SET NULL"))
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    status = Column(String, nullable=False, default=STATUS_ACTIVE)
    client_name = Column(String)
    client_email = Column(String)
    client_phone = Column(String)
    reason = Column(String)
    reminder_24h_sent = Column(Boolean, default=False, nullable=False)
    reminder_24h_sent_at = Column(DateTime)
    reminder_1h_sent = Column(Boolean, default=False, nullable=False)
    reminder_1h_sent_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
