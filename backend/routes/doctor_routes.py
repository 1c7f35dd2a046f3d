from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import require_doctor
from backend.auth.principal import Principal
from backend.core.errors import Internal
from backend.database import ensure_database_ready, get_db
from backend.models.doctor import Doctor
from backend.routes.schemas import AvailabilitySlotResponse
from backend.services import accounts, queries

router = APIRouter(tags=['doctors'])


def require_text(value: str) -> str:
    normalized = value.strip()
    if not normalized:
        raise ValueError('This field is required.')
    return normalized


class DoctorLocation(BaseModel):
    city: str = ''
    state: str = ''


class DoctorResponse(BaseModel):
    id: int
    name: str
    email: str
    specialty: str
    experience: int
    location: DoctorLocation
    consultation_locations: list[str]


class DoctorDetailResponse(DoctorResponse):
    availabilities: list[AvailabilitySlotResponse]


class UpdateLocationsRequest(BaseModel):
    consultation_locations: list[str]


class UpdateProfileRequest(BaseModel):
    name: str | None = None
    specialty: str | None = None
    experience: int | None = Field(default=None, ge=0)
    location: DoctorLocation | None = None

    @field_validator('name', 'specialty')
    @classmethod
    def validate_required_text(cls, value: str | None) -> str | None:
        if value is None:
            return value
        return require_text(value)


def doctor_to_response(doctor: Doctor) -> DoctorResponse:
    return DoctorResponse(
        id=doctor.id,
        name=doctor.name,
        email=doctor.email,
        specialty=doctor.specialty,
        experience=doctor.experience or 0,
        location=DoctorLocation(city=doctor.city or '', state=doctor.state or ''),
        consultation_locations=list(doctor.consultation_locations or []),
    )


@router.get('', response_model=list[DoctorResponse])
def list_doctors(
    specialty: str | None = Query(default=None),
    city: str | None = Query(default=None),
    state: str | None = Query(default=None),
    name: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        doctors = queries.list_doctors(db, specialty=specialty, city=city, state=state, name=name)
        return [doctor_to_response(doctor) for doctor in doctors]
    except SQLAlchemyError as exc:
        raise Internal() from exc


@router.put('/update-locations', response_model=DoctorResponse)
def update_consultation_locations(
    data: UpdateLocationsRequest,
    principal: Principal = Depends(require_doctor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    doctor = queries.get_doctor(db, principal.id)
    doctor = accounts.update_consultation_locations(db, doctor, data.consultation_locations)
    return doctor_to_response(doctor)


@router.put('/profile', response_model=DoctorResponse)
def update_profile(
    data: UpdateProfileRequest,
    principal: Principal = Depends(require_doctor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    changes = data.model_dump(exclude_unset=True, exclude={'location'})
    if data.location is not None:
        changes.update(city=data.location.city, state=data.location.state)

    doctor = queries.get_doctor(db, principal.id)
    doctor = accounts.update_doctor_profile(db, doctor, changes)
    return doctor_to_response(doctor)


@router.get('/{doctor_id}', response_model=DoctorDetailResponse)
def get_doctor(doctor_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        doctor = queries.get_doctor(db, doctor_id)
        slots = queries.list_open_slots(db, doctor.id)
        return DoctorDetailResponse(
            **doctor_to_response(doctor).model_dump(),
            availabilities=[AvailabilitySlotResponse.model_validate(slot) for slot in slots],
        )
    except SQLAlchemyError as exc:
        raise Internal() from exc
