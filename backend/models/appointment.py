"""Appointment model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from backend.core.timeutils import utcnow
from backend.database import Base
from backend.models.availability import AvailabilitySlot
from backend.models.doctor import Doctor
from backend.models.patient import Patient

STATUS_BOOKED = "booked"
STATUS_CANCELED = "canceled"
APPOINTMENT_STATUSES = (STATUS_BOOKED, STATUS_CANCELED)


class Appointment(Base):
    """Represents one successful reservation of an availability slot."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False)
    slot_id = Column(Integer, ForeignKey("availability.id"), nullable=False)
    status = Column(String, nullable=False, default=STATUS_BOOKED)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    doctor = relationship(Doctor)
    patient = relationship(Patient)
    slot = relationship(AvailabilitySlot)
