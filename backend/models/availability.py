"""Availability model definitions."""

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from backend.core.timeutils import utcnow
from backend.database import Base
from backend.models.doctor import Doctor


class AvailabilitySlot(Base):
    """A bookable time window owned by one doctor.

    ``is_booked`` is only written by the booking coordinator.
    """
    __tablename__ = "availability"
    __table_args__ = (CheckConstraint("start_time < end_time", name="ck_availability_window"),)

    id = Column(Integer, primary_key=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    location = Column(String, nullable=False)
    is_booked = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    doctor = relationship(Doctor)
