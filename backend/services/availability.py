"""Doctor-facing slot publishing."""

import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core.errors import Internal, OverlappingSlot, ValidationError
from backend.core.timeutils import to_storage, utcnow
from backend.models.availability import AvailabilitySlot
from backend.models.doctor import Doctor

logger = logging.getLogger(__name__)


def find_overlapping_slot(
    db: Session,
    doctor_id: int,
    start_time: datetime,
    end_time: datetime,
) -> AvailabilitySlot | None:
    return db.query(AvailabilitySlot).filter(
        AvailabilitySlot.doctor_id == doctor_id,
        AvailabilitySlot.start_time < end_time,
        AvailabilitySlot.end_time > start_time,
    ).first()


def create_slot(
    db: Session,
    doctor: Doctor,
    start: datetime,
    end: datetime,
    location: str,
    now: datetime | None = None,
) -> AvailabilitySlot:
    """Publish a new open slot for ``doctor``.

    The overlap check and the insert are not serialized against each other;
    two concurrent creates for the same doctor can both pass the check.
    """
    start_time = to_storage(start)
    end_time = to_storage(end)
    now = now or utcnow()

    if start_time >= end_time:
        raise ValidationError('Start time must be before end time.')

    if start_time < now:
        raise ValidationError('Cannot create availability in the past.')

    location = location.strip()
    allowed_locations = list(doctor.consultation_locations or [])
    if location not in allowed_locations:
        allowed = ', '.join(allowed_locations) or 'none'
        raise ValidationError(f'Location is not in your consultation locations. Available locations: {allowed}.')

    try:
        if find_overlapping_slot(db, doctor.id, start_time, end_time):
            raise OverlappingSlot()

        slot = AvailabilitySlot(
            doctor_id=doctor.id,
            start_time=start_time,
            end_time=end_time,
            location=location,
            is_booked=False,
        )
        db.add(slot)
        db.commit()
        db.refresh(slot)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to create slot for doctor %s', doctor.id)
        raise Internal() from exc

    logger.info('Doctor %s published slot %s (%s - %s)', doctor.id, slot.id, start_time, end_time)
    return slot
