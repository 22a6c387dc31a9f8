import threading
from datetime import datetime, time

import pytest

from scheduler.core.errors import ConflictError, InvalidInputError, NotFoundError
from scheduler.models.appointment import Appointment, AppointmentStatus
from scheduler.models.user import User
from scheduler.scheduling import booking
from scheduler.scheduling.intervals import DayOfWeek, WeeklyRule
from scheduler.services.availability_service import replace_rules

SLOT_START = datetime(2026, 1, 5, 9, 0)
SLOT_END = datetime(2026, 1, 5, 9, 30)


def _book(db, user_id: int, start: datetime = SLOT_START, end: datetime = SLOT_END, **kwargs) -> Appointment:
    return booking.book(
        db,
        user_id=user_id,
        invitee_email='guest@example.com',
        title='Intro call',
        start_time=start,
        end_time=end,
        **kwargs,
    )


def test_book_creates_pending_appointment_and_bumps_booking_version(db, make_user) -> None:
    owner = make_user()

    appointment = _book(db, owner.id)

    assert appointment.id is not None
    assert appointment.status == AppointmentStatus.PENDING.value
    assert appointment.start_time == SLOT_START
    db.refresh(owner)
    assert owner.booking_version == 1


def test_book_rejects_overlapping_active_appointment(db, make_user) -> None:
    owner = make_user()
    _book(db, owner.id)

    with pytest.raises(ConflictError) as exception_info:
        _book(db, owner.id, start=datetime(2026, 1, 5, 9, 15), end=datetime(2026, 1, 5, 9, 45))

    assert exception_info.value.detail == booking.SLOT_TAKEN_DETAIL
    assert db.query(Appointment).count() == 1


def test_book_allows_back_to_back_appointments(db, make_user) -> None:
    owner = make_user()
    _book(db, owner.id)

    following = _book(db, owner.id, start=SLOT_END, end=datetime(2026, 1, 5, 10, 0))

    assert following.start_time == SLOT_END
    assert db.query(Appointment).count() == 2


def test_book_ignores_canceled_appointment_in_same_slot(db, make_user) -> None:
    owner = make_user()
    first = _book(db, owner.id)
    first.status = AppointmentStatus.CANCELED.value
    db.commit()

    replacement = _book(db, owner.id)

    assert replacement.id != first.id


def test_book_rejects_empty_interval_without_writing(db, make_user) -> None:
    owner = make_user()

    with pytest.raises(InvalidInputError):
        _book(db, owner.id, start=SLOT_START, end=SLOT_START)

    assert db.query(Appointment).count() == 0
    db.refresh(owner)
    assert owner.booking_version == 0


def test_book_rejects_inactive_initial_status(db, make_user) -> None:
    owner = make_user()

    with pytest.raises(InvalidInputError):
        _book(db, owner.id, status=AppointmentStatus.COMPLETED)


def test_book_raises_not_found_for_unknown_owner(db) -> None:
    with pytest.raises(NotFoundError):
        _book(db, 404)

    assert db.query(Appointment).count() == 0


def test_book_requires_slot_inside_weekly_rule_when_asked(db, make_user) -> None:
    owner = make_user()
    replace_rules(db, owner.id, [WeeklyRule(day=DayOfWeek.MONDAY, start=time(9, 0), end=time(12, 0))])

    with pytest.raises(InvalidInputError) as exception_info:
        _book(
            db,
            owner.id,
            start=datetime(2026, 1, 5, 11, 30),
            end=datetime(2026, 1, 5, 12, 30),
            require_availability=True,
        )

    assert exception_info.value.detail == 'Requested time is outside the available hours.'
    assert db.query(Appointment).count() == 0

    inside = _book(db, owner.id, require_availability=True)
    assert inside.end_time == SLOT_END


def test_unique_index_violation_is_reported_as_conflict(db, make_user, monkeypatch) -> None:
    owner = make_user()
    _book(db, owner.id)
    monkeypatch.setattr(booking, 'find_conflicting_appointments', lambda *args, **kwargs: [])

    with pytest.raises(ConflictError):
        _book(db, owner.id)

    assert db.query(Appointment).count() == 1


def test_concurrent_identical_bookings_yield_exactly_one_appointment(session_factory, make_user) -> None:
    owner_id = make_user().id
    barrier = threading.Barrier(2)
    outcomes: list[object] = []
    outcomes_lock = threading.Lock()

    def attempt() -> None:
        session = session_factory()
        try:
            barrier.wait()
            result: object = _book(session, owner_id).id
        except ConflictError as exc:
            result = exc
        finally:
            session.close()
        with outcomes_lock:
            outcomes.append(result)

    threads = [threading.Thread(target=attempt) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    assert len(outcomes) == 2
    assert sum(isinstance(outcome, int) for outcome in outcomes) == 1
    assert sum(isinstance(outcome, ConflictError) for outcome in outcomes) == 1

    check = session_factory()
    try:
        assert check.query(Appointment).filter(Appointment.user_id == owner_id).count() == 1
        assert check.query(User).filter(User.id == owner_id).one().booking_version >= 1
    finally:
        check.close()
