"""Read-only lookups over doctors and open slots."""

from datetime import date, datetime

from sqlalchemy.orm import Session

from backend.core.errors import NotFound
from backend.core.timeutils import day_bounds, utcnow
from backend.models.availability import AvailabilitySlot
from backend.models.doctor import Doctor

LIKE_ESCAPE = '\\'


def _contains_pattern(value: str) -> str:
    escaped = (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace('%', LIKE_ESCAPE + '%')
        .replace('_', LIKE_ESCAPE + '_')
    )
    return f'%{escaped}%'


def list_doctors(
    db: Session,
    specialty: str | None = None,
    city: str | None = None,
    state: str | None = None,
    name: str | None = None,
) -> list[Doctor]:
    query = db.query(Doctor)

    filters = (
        (Doctor.specialty, specialty),
        (Doctor.city, city),
        (Doctor.state, state),
        (Doctor.name, name),
    )
    for column, value in filters:
        if value is None or not value.strip():
            continue
        query = query.filter(column.ilike(_contains_pattern(value.strip()), escape=LIKE_ESCAPE))

    return query.order_by(Doctor.name.asc(), Doctor.id.asc()).all()


def get_doctor(db: Session, doctor_id: int) -> Doctor:
    doctor = db.get(Doctor, doctor_id)
    if doctor is None:
        raise NotFound('Doctor not found.')
    return doctor


def list_open_slots(
    db: Session,
    doctor_id: int,
    on_date: date | None = None,
    now: datetime | None = None,
) -> list[AvailabilitySlot]:
    get_doctor(db, doctor_id)
    now = now or utcnow()

    query = db.query(AvailabilitySlot).filter(
        AvailabilitySlot.doctor_id == doctor_id,
        AvailabilitySlot.is_booked.is_(False),
        AvailabilitySlot.start_time > now,
    )
    if on_date is not None:
        day_start, day_end = day_bounds(on_date)
        query = query.filter(
            AvailabilitySlot.start_time >= day_start,
            AvailabilitySlot.start_time <= day_end,
        )

    return query.order_by(AvailabilitySlot.start_time.asc()).all()


def list_doctor_slots(db: Session, doctor_id: int, now: datetime | None = None) -> list[AvailabilitySlot]:
    """Every future slot of a doctor, booked or not."""
    now = now or utcnow()
    return db.query(AvailabilitySlot).filter(
        AvailabilitySlot.doctor_id == doctor_id,
        AvailabilitySlot.end_time > now,
    ).order_by(AvailabilitySlot.start_time.asc()).all()
