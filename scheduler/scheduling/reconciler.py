"""Availability reconciliation: weekly rules minus booked appointments."""

from collections.abc import Iterable, Sequence
from datetime import date, datetime, time

from sqlalchemy.orm import Session

from scheduler.core import config
from scheduler.core.errors import InvalidInputError, NotFoundError
from scheduler.models.appointment import ACTIVE_STATUSES, Appointment
from scheduler.models.availability import AvailabilityRule
from scheduler.models.user import User
from scheduler.scheduling.expander import expand
from scheduler.scheduling.intervals import BookableSlot, Interval, WeeklyRule
from scheduler.scheduling.overlap import has_conflict


def validate_range(range_start: date, range_end: date) -> None:
    if range_end <= range_start:
        raise InvalidInputError('endDate must be after startDate.')
    if (range_end - range_start).days > config.MAX_AVAILABILITY_RANGE_DAYS:
        raise InvalidInputError(
            f'Availability can be requested for at most {config.MAX_AVAILABILITY_RANGE_DAYS} days at a time.'
        )


def ensure_user_exists(db: Session, user_id: int) -> None:
    if db.query(User.id).filter(User.id == user_id).first() is None:
        raise NotFoundError('User not found.')


def load_rules(db: Session, user_id: int) -> list[WeeklyRule]:
    rows = db.query(AvailabilityRule).filter(
        AvailabilityRule.user_id == user_id,
    ).order_by(AvailabilityRule.position.asc(), AvailabilityRule.id.asc()).all()
    return [row.to_rule() for row in rows]


def load_booked_intervals(db: Session, user_id: int, window_start: datetime, window_end: datetime) -> list[Interval]:
    """Intervals of pending/confirmed appointments that reach into the window."""
    rows = db.query(Appointment.start_time, Appointment.end_time).filter(
        Appointment.user_id == user_id,
        Appointment.status.in_(ACTIVE_STATUSES),
        Appointment.start_time <= window_end,
        Appointment.end_time >= window_start,
    ).all()
    return [Interval(start_time, end_time) for start_time, end_time in rows]


def filter_open_slots(
    candidates: Iterable[BookableSlot],
    booked: Sequence[Interval],
    not_before: datetime | None = None,
) -> list[BookableSlot]:
    open_slots: list[BookableSlot] = []
    for slot in candidates:
        if not_before is not None and slot.start < not_before:
            continue
        if has_conflict(slot.interval, booked):
            continue
        open_slots.append(slot)
    return open_slots


def reconcile(
    db: Session,
    user_id: int,
    range_start: date,
    range_end: date,
    not_before: datetime | None = None,
) -> list[BookableSlot]:
    """Bookable slots for ``user_id`` on the days ``[range_start, range_end)``.

    Read-only. Raises ``NotFoundError`` for an unknown user; a user without
    rules simply has no slots.
    """
    validate_range(range_start, range_end)
    ensure_user_exists(db, user_id)

    rules = load_rules(db, user_id)
    if not rules:
        return []

    candidates = expand(rules, range_start, range_end)
    booked = load_booked_intervals(
        db,
        user_id,
        datetime.combine(range_start, time.min),
        datetime.combine(range_end, time.min),
    )
    return filter_open_slots(candidates, booked, not_before=not_before)
