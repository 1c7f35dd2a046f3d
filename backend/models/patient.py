"""Patient model definitions."""

from sqlalchemy import Column, DateTime, Integer, String

from backend.core.timeutils import utcnow
from backend.database import Base


class Patient(Base):
    """A patient who books appointments."""
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
