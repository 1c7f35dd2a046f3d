from datetime import timedelta

import pytest
from pydantic import ValidationError as PydanticValidationError

from backend.auth.principal import Principal
from backend.core.errors import NotFound, ValidationError
from backend.core.timeutils import utcnow
from backend.routes.doctor_routes import (
    DoctorLocation,
    UpdateLocationsRequest,
    UpdateProfileRequest,
    get_doctor,
    list_doctors,
    update_consultation_locations,
    update_profile,
)


def test_list_doctors_applies_filters(db_session, make_doctor) -> None:
    make_doctor(name='Alice Heart', specialty='Cardiology', city='Boston')
    make_doctor(name='Bob Bones', specialty='Orthopedics', city='Austin')

    response = list_doctors(specialty='ortho', city=None, state=None, name=None, db=db_session)

    assert [doctor.name for doctor in response] == ['Bob Bones']
    assert response[0].location == DoctorLocation(city='Austin', state='IL')


def test_get_doctor_embeds_only_open_future_slots(db_session, make_doctor, make_slot, tomorrow_at) -> None:
    doctor = make_doctor()
    open_slot = make_slot(doctor, tomorrow_at(10), tomorrow_at(10, 30))
    make_slot(doctor, tomorrow_at(11), tomorrow_at(11, 30), is_booked=True)
    past = utcnow() - timedelta(days=1)
    make_slot(doctor, past, past + timedelta(minutes=30))

    response = get_doctor(doctor.id, db=db_session)

    assert response.id == doctor.id
    assert [slot.id for slot in response.availabilities] == [open_slot.id]
    assert response.availabilities[0].start_time.tzinfo is not None


def test_get_doctor_returns_not_found(db_session) -> None:
    with pytest.raises(NotFound) as exception_info:
        get_doctor(123, db=db_session)

    assert exception_info.value.status_code == 404


def test_update_consultation_locations_replaces_list(db_session, make_doctor) -> None:
    doctor = make_doctor(consultation_locations=['Clinic A'])

    response = update_consultation_locations(
        UpdateLocationsRequest(consultation_locations=[' Clinic B ', 'Clinic C', 'Clinic B']),
        principal=Principal.of(doctor),
        db=db_session,
    )

    assert response.consultation_locations == ['Clinic B', 'Clinic C']
    db_session.refresh(doctor)
    assert doctor.consultation_locations == ['Clinic B', 'Clinic C']


def test_update_consultation_locations_rejects_empty_list(db_session, make_doctor) -> None:
    doctor = make_doctor()

    with pytest.raises(ValidationError) as exception_info:
        update_consultation_locations(
            UpdateLocationsRequest(consultation_locations=['  ']),
            principal=Principal.of(doctor),
            db=db_session,
        )

    assert exception_info.value.status_code == 400


def test_update_profile_changes_only_given_fields(db_session, make_doctor) -> None:
    doctor = make_doctor(name='Dr. Old', specialty='Cardiology', experience=3)

    response = update_profile(
        UpdateProfileRequest(name='Dr. New', location=DoctorLocation(city='Denver', state='CO')),
        principal=Principal.of(doctor),
        db=db_session,
    )

    assert response.name == 'Dr. New'
    assert response.specialty == 'Cardiology'
    assert response.experience == 3
    assert response.location == DoctorLocation(city='Denver', state='CO')


@pytest.mark.parametrize('changes', [{'name': '   '}, {'specialty': ''}])
def test_update_profile_request_rejects_blank_required_fields(changes: dict) -> None:
    with pytest.raises(PydanticValidationError):
        UpdateProfileRequest(**changes)


def test_update_profile_request_trims_text_fields() -> None:
    request = UpdateProfileRequest(name='  Dr. New ', specialty=None)

    assert request.name == 'Dr. New'
    assert request.specialty is None
