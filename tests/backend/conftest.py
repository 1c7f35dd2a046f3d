import os
from datetime import datetime, timedelta

os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['BOOKING_TIMEZONE'] = 'UTC'
os.environ['NOTIFICATIONS_ENABLED'] = 'false'

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from backend.core.timeutils import utcnow  # noqa: E402
from backend.database import Base  # noqa: E402
from backend.models.appointment import Appointment  # noqa: E402, F401
from backend.models.availability import AvailabilitySlot  # noqa: E402
from backend.models.doctor import Doctor  # noqa: E402
from backend.models.patient import Patient  # noqa: E402


@pytest.fixture(autouse=True)
def skip_schema_check(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('backend.database.ensure_schema', lambda: None)


@pytest.fixture
def db_session():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def tomorrow_at():
    tomorrow = (utcnow() + timedelta(days=1)).date()

    def build(hour: int, minute: int = 0) -> datetime:
        return datetime(tomorrow.year, tomorrow.month, tomorrow.day, hour, minute)

    return build


@pytest.fixture
def make_doctor(db_session):
    counter = {'value': 0}

    def build(**overrides) -> Doctor:
        counter['value'] += 1
        fields = {
            'name': f"Dr. Test {counter['value']}",
            'email': f"doctor{counter['value']}@example.com",
            'hashed_password': 'not-a-real-hash',
            'specialty': 'Cardiology',
            'experience': 10,
            'city': 'Springfield',
            'state': 'IL',
            'consultation_locations': ['Clinic A'],
        }
        fields.update(overrides)
        doctor = Doctor(**fields)
        db_session.add(doctor)
        db_session.commit()
        db_session.refresh(doctor)
        return doctor

    return build


@pytest.fixture
def make_patient(db_session):
    counter = {'value': 0}

    def build(**overrides) -> Patient:
        counter['value'] += 1
        fields = {
            'name': f"Patient {counter['value']}",
            'email': f"patient{counter['value']}@example.com",
            'hashed_password': 'not-a-real-hash',
        }
        fields.update(overrides)
        patient = Patient(**fields)
        db_session.add(patient)
        db_session.commit()
        db_session.refresh(patient)
        return patient

    return build


@pytest.fixture
def make_slot(db_session):
    def build(doctor: Doctor, start_time: datetime, end_time: datetime, location: str = 'Clinic A', is_booked: bool = False) -> AvailabilitySlot:
        slot = AvailabilitySlot(
            doctor_id=doctor.id,
            start_time=start_time,
            end_time=end_time,
            location=location,
            is_booked=is_booked,
        )
        db_session.add(slot)
        db_session.commit()
        db_session.refresh(slot)
        return slot

    return build
