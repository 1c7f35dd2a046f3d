"""Doctor model definitions."""

from sqlalchemy import JSON, Column, DateTime, Integer, String

from backend.core.timeutils import utcnow
from backend.database import Base


class Doctor(Base):
    """A doctor who publishes availability."""
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    specialty = Column(String, nullable=False)
    experience = Column(Integer, nullable=False, default=0)
    city = Column(String, nullable=False, default="")
    state = Column(String, nullable=False, default="")
    consultation_locations = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
