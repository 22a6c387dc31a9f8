import logging
from datetime import datetime
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from scheduler.core import config
from scheduler.core.errors import ConflictError, InvalidInputError, NotFoundError
from scheduler.models.appointment import ACTIVE_STATUSES, Appointment, AppointmentStatus
from scheduler.scheduling import booking
from scheduler.scheduling.intervals import Interval

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[AppointmentStatus, set[AppointmentStatus]] = {
    AppointmentStatus.PENDING: {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELED},
    AppointmentStatus.CONFIRMED: {AppointmentStatus.CANCELED, AppointmentStatus.COMPLETED},
    AppointmentStatus.CANCELED: set(),
    AppointmentStatus.COMPLETED: set(),
}

EDITABLE_FIELDS = {'title', 'description', 'invitee_name', 'invitee_email', 'start_time', 'end_time', 'status'}


def validate_transition(current: AppointmentStatus, target: AppointmentStatus) -> None:
    if current == target:
        return
    if target not in ALLOWED_TRANSITIONS[current]:
        raise ConflictError(f'Cannot change appointment status from {current.value} to {target.value}.')


def create_owner_appointment(
    db: Session,
    user_id: int,
    invitee_email: str,
    title: str,
    start_time: datetime,
    end_time: datetime,
    invitee_name: str | None = None,
    description: str | None = None,
    status: AppointmentStatus = AppointmentStatus.PENDING,
) -> Appointment:
    return booking.book(
        db,
        user_id=user_id,
        invitee_email=invitee_email,
        title=title,
        start_time=start_time,
        end_time=end_time,
        invitee_name=invitee_name,
        description=description,
        status=status,
    )


def book_public_appointment(
    db: Session,
    user_id: int,
    invitee_email: str,
    title: str,
    start_time: datetime,
    end_time: datetime,
    now: datetime,
    invitee_name: str | None = None,
    description: str | None = None,
) -> Appointment:
    if start_time <= now:
        raise InvalidInputError('Appointments must be scheduled in the future.')

    return booking.book(
        db,
        user_id=user_id,
        invitee_email=invitee_email,
        title=title,
        start_time=start_time,
        end_time=end_time,
        invitee_name=invitee_name,
        description=description,
        status=AppointmentStatus.PENDING,
        require_availability=config.BOOKING_REQUIRES_AVAILABILITY,
    )


def list_appointments(db: Session, user_id: int) -> list[Appointment]:
    return db.query(Appointment).filter(
        Appointment.user_id == user_id,
    ).order_by(Appointment.start_time.asc()).all()


def list_upcoming_appointments(db: Session, user_id: int, now: datetime) -> list[Appointment]:
    return db.query(Appointment).filter(
        Appointment.user_id == user_id,
        Appointment.start_time >= now,
    ).order_by(Appointment.start_time.asc()).all()


def get_appointment(db: Session, appointment_id: int, user_id: int) -> Appointment:
    appointment = db.query(Appointment).filter(
        Appointment.id == appointment_id,
        Appointment.user_id == user_id,
    ).first()
    if appointment is None:
        raise NotFoundError('Appointment not found.')
    return appointment


def update_appointment(db: Session, appointment_id: int, user_id: int, changes: dict[str, Any]) -> Appointment:
    """Apply owner edits; moving an active appointment re-checks for conflicts."""
    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise InvalidInputError(f'Unsupported fields: {", ".join(sorted(unknown))}.')

    appointment = get_appointment(db, appointment_id, user_id)
    current_status = AppointmentStatus(appointment.status)
    target_status = AppointmentStatus(changes.get('status') or current_status)
    validate_transition(current_status, target_status)

    interval = Interval(
        changes.get('start_time') or appointment.start_time,
        changes.get('end_time') or appointment.end_time,
    )
    moved = interval != appointment.interval

    try:
        if moved and target_status.value in ACTIVE_STATUSES:
            booking.ensure_slot_free(db, user_id, interval, exclude_appointment_id=appointment.id)

        for field, value in changes.items():
            if field == 'status':
                continue
            if field in ('start_time', 'end_time') and value is None:
                continue
            setattr(appointment, field, value)
        appointment.status = target_status.value
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(booking.SLOT_TAKEN_DETAIL) from exc
    except Exception:
        db.rollback()
        raise

    db.refresh(appointment)
    if target_status != current_status:
        logger.info(
            'Appointment %s for user %s moved from %s to %s',
            appointment.id,
            user_id,
            current_status.value,
            target_status.value,
        )
    return appointment


def delete_appointment(db: Session, appointment_id: int, user_id: int) -> None:
    appointment = get_appointment(db, appointment_id, user_id)
    db.delete(appointment)
    db.commit()
    logger.info('Deleted appointment %s for user %s', appointment_id, user_id)
