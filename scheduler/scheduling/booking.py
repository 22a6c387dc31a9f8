"""Conflict-checked appointment writes.

Every write that claims a time slot goes through ``lock_owner`` first. The
lock is an UPDATE of the owner's ``booking_version``: PostgreSQL holds the row
lock and SQLite the database write lock until commit, so the conflict check
and the insert that follows cannot interleave with another booking for the
same owner, even across server processes. The partial unique index on
``(user_id, start_time)`` for active appointments catches anything that slips
past, and is reported as the same conflict.
"""

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from scheduler.core.errors import ConflictError, InvalidInputError, NotFoundError
from scheduler.models.appointment import ACTIVE_STATUSES, Appointment, AppointmentStatus
from scheduler.models.user import User
from scheduler.scheduling.expander import fits_availability
from scheduler.scheduling.intervals import Interval
from scheduler.scheduling.overlap import overlaps
from scheduler.scheduling.reconciler import load_rules

logger = logging.getLogger(__name__)

SLOT_TAKEN_DETAIL = 'Time slot is already booked.'


def lock_owner(db: Session, user_id: int) -> None:
    updated = db.query(User).filter(User.id == user_id).update(
        {User.booking_version: User.booking_version + 1},
        synchronize_session=False,
    )
    if not updated:
        raise NotFoundError('User not found.')


def find_conflicting_appointments(
    db: Session,
    user_id: int,
    interval: Interval,
    exclude_appointment_id: int | None = None,
) -> list[Appointment]:
    query = db.query(Appointment).filter(
        Appointment.user_id == user_id,
        Appointment.status.in_(ACTIVE_STATUSES),
        Appointment.start_time < interval.end,
        Appointment.end_time > interval.start,
    )
    if exclude_appointment_id is not None:
        query = query.filter(Appointment.id != exclude_appointment_id)

    return [appointment for appointment in query.all() if overlaps(interval, appointment.interval)]


def ensure_slot_free(
    db: Session,
    user_id: int,
    interval: Interval,
    exclude_appointment_id: int | None = None,
) -> None:
    """Lock the owner and fail if ``interval`` collides with an active appointment.

    Must run inside the transaction that goes on to write the appointment.
    """
    lock_owner(db, user_id)
    conflicts = find_conflicting_appointments(db, user_id, interval, exclude_appointment_id)
    if conflicts:
        logger.warning(
            'Rejected %s-%s for user %s: overlaps appointment(s) %s',
            interval.start.isoformat(),
            interval.end.isoformat(),
            user_id,
            [appointment.id for appointment in conflicts],
        )
        raise ConflictError(SLOT_TAKEN_DETAIL)


def book(
    db: Session,
    user_id: int,
    invitee_email: str,
    title: str,
    start_time: datetime,
    end_time: datetime,
    invitee_name: str | None = None,
    description: str | None = None,
    status: AppointmentStatus = AppointmentStatus.PENDING,
    require_availability: bool = False,
) -> Appointment:
    interval = Interval(start_time, end_time)
    if status.value not in ACTIVE_STATUSES:
        raise InvalidInputError('New appointments must be pending or confirmed.')

    try:
        ensure_slot_free(db, user_id, interval)

        if require_availability and not fits_availability(load_rules(db, user_id), interval):
            raise InvalidInputError('Requested time is outside the available hours.')

        appointment = Appointment(
            user_id=user_id,
            invitee_email=invitee_email,
            invitee_name=invitee_name,
            title=title,
            description=description,
            start_time=interval.start,
            end_time=interval.end,
            status=status.value,
        )
        db.add(appointment)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning('Rejected booking for user %s at %s: slot claimed concurrently', user_id, start_time)
        raise ConflictError(SLOT_TAKEN_DETAIL) from exc
    except Exception:
        db.rollback()
        raise

    db.refresh(appointment)
    logger.info(
        'Appointment %s (%s) booked for user %s from %s to %s',
        appointment.id,
        appointment.status,
        user_id,
        appointment.start_time.isoformat(),
        appointment.end_time.isoformat(),
    )
    return appointment
