from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import require_doctor, require_patient
from backend.auth.principal import Principal
from backend.core.errors import Internal, ValidationError
from backend.core.timeutils import as_utc
from backend.database import ensure_database_ready, get_db
from backend.models.appointment import APPOINTMENT_STATUSES, Appointment
from backend.routes.schemas import AvailabilitySlotResponse
from backend.services import booking
from backend.services.notifications import (
    BOOKING_CANCELLATION,
    BOOKING_CONFIRMATION,
    Notifier,
    build_appointment_notifications,
    dispatch_notifications,
    get_notifier,
)

router = APIRouter(tags=['appointments'])


class BookAppointmentRequest(BaseModel):
    slot_id: int


class DoctorSummary(BaseModel):
    id: int
    name: str
    specialty: str


class PatientSummary(BaseModel):
    id: int
    name: str
    email: str


class AppointmentResponse(BaseModel):
    id: int
    status: str
    created_at: datetime
    slot: AvailabilitySlotResponse
    doctor: DoctorSummary
    patient: PatientSummary


def appointment_to_response(appointment: Appointment) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        status=appointment.status,
        created_at=as_utc(appointment.created_at),
        slot=AvailabilitySlotResponse.model_validate(appointment.slot),
        doctor=DoctorSummary(
            id=appointment.doctor.id,
            name=appointment.doctor.name,
            specialty=appointment.doctor.specialty,
        ),
        patient=PatientSummary(
            id=appointment.patient.id,
            name=appointment.patient.name,
            email=appointment.patient.email,
        ),
    )


def schedule_notifications(
    background_tasks: BackgroundTasks,
    notifier: Notifier | None,
    template: str,
    appointment: Appointment,
) -> None:
    if notifier is None:
        return
    # Built here while the session is still open; delivery runs after the response.
    notifications = build_appointment_notifications(template, appointment)
    background_tasks.add_task(dispatch_notifications, notifier, notifications)


def _list_appointments(db: Session, column, principal_id: int, status_filter: str | None) -> list[AppointmentResponse]:
    if status_filter is not None and status_filter not in APPOINTMENT_STATUSES:
        raise ValidationError(f'Status must be one of: {", ".join(APPOINTMENT_STATUSES)}.')

    try:
        query = db.query(Appointment).filter(column == principal_id)
        if status_filter is not None:
            query = query.filter(Appointment.status == status_filter)
        appointments = query.order_by(Appointment.created_at.desc(), Appointment.id.desc()).all()
        return [appointment_to_response(appointment) for appointment in appointments]
    except SQLAlchemyError as exc:
        raise Internal() from exc


@router.post('/book', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(
    data: BookAppointmentRequest,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(require_patient),
    db: Session = Depends(get_db),
    notifier: Notifier | None = Depends(get_notifier),
):
    ensure_database_ready()

    appointment = booking.reserve(db, data.slot_id, principal.id)
    schedule_notifications(background_tasks, notifier, BOOKING_CONFIRMATION, appointment)
    return appointment_to_response(appointment)


@router.put('/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(require_patient),
    db: Session = Depends(get_db),
    notifier: Notifier | None = Depends(get_notifier),
):
    ensure_database_ready()

    appointment = booking.cancel(db, appointment_id, principal)
    schedule_notifications(background_tasks, notifier, BOOKING_CANCELLATION, appointment)
    return appointment_to_response(appointment)


@router.get('/patient', response_model=list[AppointmentResponse])
def list_patient_appointments(
    status_filter: str | None = Query(default=None, alias='status'),
    principal: Principal = Depends(require_patient),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    return _list_appointments(db, Appointment.patient_id, principal.id, status_filter)


@router.get('/doctor', response_model=list[AppointmentResponse])
def list_doctor_appointments(
    status_filter: str | None = Query(default=None, alias='status'),
    principal: Principal = Depends(require_doctor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    return _list_appointments(db, Appointment.doctor_id, principal.id, status_filter)
