"""Response models shared by several routers."""

from datetime import datetime

from pydantic import BaseModel, field_validator

from backend.core.timeutils import as_utc


class AvailabilitySlotResponse(BaseModel):
    id: int
    doctor_id: int
    start_time: datetime
    end_time: datetime
    location: str
    is_booked: bool

    class Config:
        from_attributes = True

    @field_validator('start_time', 'end_time')
    @classmethod
    def attach_utc(cls, value: datetime) -> datetime:
        return as_utc(value)
