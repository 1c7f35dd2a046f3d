"""Registration, login and self-service profile updates."""

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.passwords import hash_password, verify_password
from backend.auth.principal import PRINCIPAL_MODELS, Principal, PrincipalKind
from backend.core.errors import DuplicateEmail, Internal, Unauthenticated, ValidationError
from backend.models.doctor import Doctor
from backend.models.patient import Patient

logger = logging.getLogger(__name__)


def normalize_email(value: str) -> str:
    return value.strip().lower()


def clean_locations(locations: list[str]) -> list[str]:
    """Strip, drop blanks and de-duplicate while keeping order."""
    cleaned: list[str] = []
    for location in locations:
        normalized = location.strip()
        if normalized and normalized not in cleaned:
            cleaned.append(normalized)
    return cleaned


def _save_new(db: Session, record: Doctor | Patient) -> None:
    try:
        db.add(record)
        db.commit()
        db.refresh(record)
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateEmail() from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to register %s', record.email)
        raise Internal() from exc


def register_patient(db: Session, name: str, email: str, password: str) -> Patient:
    email = normalize_email(email)
    if db.query(Patient.id).filter(Patient.email == email).first():
        raise DuplicateEmail('Patient already exists.')

    patient = Patient(name=name.strip(), email=email, hashed_password=hash_password(password))
    _save_new(db, patient)
    logger.info('Registered patient %s', patient.id)
    return patient


def register_doctor(
    db: Session,
    name: str,
    email: str,
    password: str,
    specialty: str,
    experience: int,
    city: str,
    state: str,
    consultation_locations: list[str],
) -> Doctor:
    email = normalize_email(email)
    if db.query(Doctor.id).filter(Doctor.email == email).first():
        raise DuplicateEmail('Doctor already exists.')

    doctor = Doctor(
        name=name.strip(),
        email=email,
        hashed_password=hash_password(password),
        specialty=specialty.strip(),
        experience=experience,
        city=city.strip(),
        state=state.strip(),
        consultation_locations=clean_locations(consultation_locations),
    )
    _save_new(db, doctor)
    logger.info('Registered doctor %s', doctor.id)
    return doctor


def authenticate(db: Session, email: str, password: str, kind: PrincipalKind) -> Principal:
    model = PRINCIPAL_MODELS[kind]
    record = db.query(model).filter(model.email == normalize_email(email)).first()
    if record is None or not verify_password(password, record.hashed_password):
        raise Unauthenticated('Invalid email or password.')
    return Principal(kind=kind, id=record.id, record=record)


def _save(db: Session, record: Doctor) -> Doctor:
    try:
        db.commit()
        db.refresh(record)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to update doctor %s', record.id)
        raise Internal() from exc
    return record


def update_consultation_locations(db: Session, doctor: Doctor, locations: list[str]) -> Doctor:
    cleaned = clean_locations(locations)
    if not cleaned:
        raise ValidationError('Consultation locations must be provided as a non-empty list.')

    doctor.consultation_locations = cleaned
    return _save(db, doctor)


def update_doctor_profile(db: Session, doctor: Doctor, changes: dict) -> Doctor:
    for field_name in ('name', 'specialty', 'city', 'state'):
        value = changes.get(field_name)
        if value is not None:
            setattr(doctor, field_name, value.strip())
    if changes.get('experience') is not None:
        doctor.experience = changes['experience']
    return _save(db, doctor)
