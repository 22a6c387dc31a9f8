"""Appointment model definitions."""

import enum
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, text

from scheduler.database import Base
from scheduler.scheduling.intervals import Interval


class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELED = "canceled"
    COMPLETED = "completed"


# Only these statuses hold on to their time slot.
ACTIVE_STATUSES = (AppointmentStatus.PENDING.value, AppointmentStatus.CONFIRMED.value)
_ACTIVE_STATUS_SQL = text("status IN ('pending', 'confirmed')")


class Appointment(Base):
    """Represents a booked appointment with an invitee."""
    __tablename__ = "appointments"
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_appointments_end_after_start"),
        Index(
            "uq_appointments_active_start",
            "user_id",
            "start_time",
            unique=True,
            sqlite_where=_ACTIVE_STATUS_SQL,
            postgresql_where=_ACTIVE_STATUS_SQL,
        ),
        Index("idx_appointments_user_time_range", "user_id", "start_time", "end_time"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    invitee_email = Column(String, nullable=False)
    invitee_name = Column(String, nullable=True)
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(String, nullable=False, default=AppointmentStatus.PENDING.value)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    @property
    def interval(self) -> Interval:
        return Interval(self.start_time, self.end_time)
