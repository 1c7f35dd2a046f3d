"""Atomic slot reservation and cancellation.

These are the only writers of ``AvailabilitySlot.is_booked`` and
``Appointment.status``. Both run in a single transaction: either the slot flag
and the appointment row change together or neither does.
"""

import logging

from sqlalchemy import inspect, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.principal import Principal
from backend.core.errors import AlreadyCanceled, Forbidden, Internal, NotFound, SlotUnavailable
from backend.core.timeutils import utcnow
from backend.models.appointment import STATUS_BOOKED, STATUS_CANCELED, Appointment
from backend.models.availability import AvailabilitySlot

logger = logging.getLogger(__name__)


def _claim_slot(db: Session, slot_id: int) -> bool:
    # Compare-and-set: only one concurrent caller can flip is_booked from false.
    result = db.execute(
        update(AvailabilitySlot)
        .where(AvailabilitySlot.id == slot_id, AvailabilitySlot.is_booked.is_(False))
        .values(is_booked=True)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _release_slot(db: Session, slot_id: int) -> None:
    db.execute(
        update(AvailabilitySlot)
        .where(AvailabilitySlot.id == slot_id)
        .values(is_booked=False)
        .execution_options(synchronize_session=False)
    )


def _reload(db: Session, appointment: Appointment) -> None:
    # Runs after commit; the change is durable even if this read fails.
    appointment_id = inspect(appointment).identity[0]
    try:
        db.refresh(appointment)
    except SQLAlchemyError as exc:
        logger.exception('Appointment %s was saved but could not be reloaded', appointment_id)
        raise Internal(
            f'Appointment {appointment_id} was saved, but it could not be loaded. Refresh your appointments.'
        ) from exc


def reserve(db: Session, slot_id: int, patient_id: int) -> Appointment:
    try:
        if not _claim_slot(db, slot_id):
            slot_exists = db.query(AvailabilitySlot.id).filter(AvailabilitySlot.id == slot_id).first()
            if slot_exists is None:
                raise NotFound('Slot not found.')
            logger.info('Patient %s lost the race for slot %s', patient_id, slot_id)
            raise SlotUnavailable()

        slot = db.get(AvailabilitySlot, slot_id, populate_existing=True)
        appointment = Appointment(
            doctor_id=slot.doctor_id,
            patient_id=patient_id,
            slot_id=slot.id,
            status=STATUS_BOOKED,
        )
        db.add(appointment)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Reservation of slot %s rolled back', slot_id)
        raise Internal() from exc
    except Exception:
        db.rollback()
        raise

    _reload(db, appointment)
    logger.info('Patient %s reserved slot %s as appointment %s', patient_id, slot_id, appointment.id)
    return appointment


def cancel(db: Session, appointment_id: int, requester: Principal) -> Appointment:
    try:
        appointment = db.get(Appointment, appointment_id)
        if appointment is None:
            raise NotFound('Appointment not found.')

        if not requester.is_patient or appointment.patient_id != requester.id:
            raise Forbidden('Not authorized to cancel this appointment.')

        if appointment.status == STATUS_CANCELED:
            raise AlreadyCanceled()

        result = db.execute(
            update(Appointment)
            .where(Appointment.id == appointment_id, Appointment.status == STATUS_BOOKED)
            .values(status=STATUS_CANCELED, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise AlreadyCanceled()

        _release_slot(db, appointment.slot_id)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Cancellation of appointment %s rolled back', appointment_id)
        raise Internal() from exc
    except Exception:
        db.rollback()
        raise

    _reload(db, appointment)
    logger.info('Patient %s canceled appointment %s', requester.id, appointment_id)
    return appointment
