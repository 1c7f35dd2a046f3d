from datetime import date, datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import require_doctor
from backend.auth.principal import Principal
from backend.core.errors import Internal
from backend.database import ensure_database_ready, get_db
from backend.routes.schemas import AvailabilitySlotResponse
from backend.services import availability, queries

router = APIRouter(tags=['availability'])


class CreateSlotRequest(BaseModel):
    start: datetime
    end: datetime
    location: str

    @field_validator('location')
    @classmethod
    def validate_location(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Location is required.')
        return normalized


@router.post('', response_model=AvailabilitySlotResponse, status_code=status.HTTP_201_CREATED)
def create_slot(
    data: CreateSlotRequest,
    principal: Principal = Depends(require_doctor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    doctor = queries.get_doctor(db, principal.id)
    return availability.create_slot(db, doctor, start=data.start, end=data.end, location=data.location)


@router.get('/mine', response_model=list[AvailabilitySlotResponse])
def list_my_slots(
    principal: Principal = Depends(require_doctor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return queries.list_doctor_slots(db, principal.id)
    except SQLAlchemyError as exc:
        raise Internal() from exc


@router.get('/{doctor_id}', response_model=list[AvailabilitySlotResponse])
def list_open_slots(
    doctor_id: int,
    on_date: date | None = Query(default=None, alias='date'),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return queries.list_open_slots(db, doctor_id, on_date=on_date)
    except SQLAlchemyError as exc:
        raise Internal() from exc
