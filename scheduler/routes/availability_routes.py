from datetime import date, datetime, timedelta

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from scheduler.auth.dependencies import get_current_user
from scheduler.core import config
from scheduler.core.errors import InvalidInputError
from scheduler.core.timeutils import local_now
from scheduler.database import get_db
from scheduler.models.availability import AvailabilityRule
from scheduler.models.user import User
from scheduler.routes.common import ApiModel, database_unavailable, normalize_optional_text
from scheduler.scheduling.intervals import BookableSlot, DayOfWeek, WeeklyRule, build_time
from scheduler.scheduling.reconciler import reconcile
from scheduler.services import availability_service

router = APIRouter(tags=['availabilities'])

MAX_INSTRUCTIONS_LENGTH = 600


class TimeSlotRequest(ApiModel):
    """One weekly window.

    Clients send either ``endHour``/``endMinute`` or ``durationMinutes``;
    ``to_rule`` folds both shapes into a ``WeeklyRule``.
    """

    day: DayOfWeek
    start_hour: int = Field(ge=0, le=23)
    start_minute: int = Field(default=0, ge=0, le=59)
    end_hour: int | None = Field(default=None, ge=0, le=23)
    end_minute: int | None = Field(default=None, ge=0, le=59)
    duration_minutes: int | None = Field(default=None, ge=1)
    instructions: str | None = None

    @field_validator('day', mode='before')
    @classmethod
    def parse_day(cls, value):
        try:
            return DayOfWeek.parse(value)
        except InvalidInputError as exc:
            raise ValueError(exc.detail) from exc

    @field_validator('instructions')
    @classmethod
    def validate_instructions(cls, value: str | None) -> str | None:
        return normalize_optional_text(value, MAX_INSTRUCTIONS_LENGTH, 'Instructions')

    @model_validator(mode='after')
    def validate_window(self) -> 'TimeSlotRequest':
        has_end = self.end_hour is not None or self.end_minute is not None
        has_duration = self.duration_minutes is not None

        if has_end == has_duration:
            raise ValueError('Provide either endHour/endMinute or durationMinutes.')
        if has_end and self.end_hour is None:
            raise ValueError('endMinute requires endHour.')

        try:
            self.to_rule()
        except InvalidInputError as exc:
            raise ValueError(exc.detail) from exc

        return self

    def to_rule(self) -> WeeklyRule:
        if self.duration_minutes is not None:
            return WeeklyRule.from_duration(self.day, self.start_hour, self.start_minute, self.duration_minutes)

        return WeeklyRule(
            day=self.day,
            start=build_time(self.start_hour, self.start_minute),
            end=build_time(self.end_hour, self.end_minute or 0),
        )


class ReplaceAvailabilityRequest(ApiModel):
    time_slots: list[TimeSlotRequest]


class AvailabilityResponse(ApiModel):
    id: int
    user_id: int
    day: str
    day_index: int
    day_name: str
    start_hour: int
    start_minute: int
    end_hour: int
    end_minute: int
    duration_minutes: int
    instructions: str | None = None

    @classmethod
    def from_row(cls, row: AvailabilityRule) -> 'AvailabilityResponse':
        rule = row.to_rule()
        return cls(
            id=row.id,
            user_id=row.user_id,
            day=rule.day.label,
            day_index=rule.day.index,
            day_name=rule.day.display_name,
            start_hour=row.start_hour,
            start_minute=row.start_minute,
            end_hour=row.end_hour,
            end_minute=row.end_minute,
            duration_minutes=rule.duration_minutes,
            instructions=row.instructions,
        )


class PublicSlotResponse(ApiModel):
    id: str
    rule_id: int | None = None
    day: str
    day_name: str
    slot_date: date = Field(alias='date')
    start_time: str
    end_time: str
    start_date: datetime
    end_date: datetime
    duration_minutes: int

    @classmethod
    def from_slot(cls, slot: BookableSlot) -> 'PublicSlotResponse':
        return cls(
            id=f'{slot.rule_id}-{slot.start:%Y%m%d%H%M}',
            rule_id=slot.rule_id,
            day=slot.day.label,
            day_name=slot.day.display_name,
            slot_date=slot.start.date(),
            start_time=f'{slot.start:%H:%M}',
            end_time=f'{slot.end:%H:%M}',
            start_date=slot.start,
            end_date=slot.end,
            duration_minutes=slot.duration_minutes,
        )


@router.post('', response_model=list[AvailabilityResponse])
def replace_availability(
    data: ReplaceAvailabilityRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    rules = [slot.to_rule() for slot in data.time_slots]
    instructions = [slot.instructions for slot in data.time_slots]

    try:
        rows = availability_service.replace_rules(db, current_user.id, rules, instructions)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return [AvailabilityResponse.from_row(row) for row in sorted(rows, key=lambda row: (row.day, row.start_hour, row.start_minute))]


@router.get('', response_model=list[AvailabilityResponse])
def list_my_availability(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        rows = availability_service.list_rules(db, current_user.id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return [AvailabilityResponse.from_row(row) for row in rows]


@router.get('/public', response_model=list[PublicSlotResponse])
def list_public_availability(
    user_id: int = Query(..., alias='userId'),
    start_date: date | None = Query(default=None, alias='startDate'),
    end_date: date | None = Query(default=None, alias='endDate'),
    day_of_week: int | None = Query(default=None, alias='dayOfWeek', ge=0, le=7),
    db: Session = Depends(get_db),
):
    now = local_now()
    range_start = start_date or now.date()
    range_end = end_date or range_start + timedelta(days=config.DEFAULT_AVAILABILITY_RANGE_DAYS)

    try:
        slots = reconcile(db, user_id, range_start, range_end, not_before=now)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    if day_of_week is not None:
        wanted_day = DayOfWeek.from_index(day_of_week)
        slots = [slot for slot in slots if slot.day == wanted_day]

    return [PublicSlotResponse.from_slot(slot) for slot in slots]


@router.get('/{rule_id}', response_model=AvailabilityResponse)
def get_availability(
    rule_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        row = availability_service.get_rule(db, rule_id, current_user.id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return AvailabilityResponse.from_row(row)


@router.delete('/{rule_id}', status_code=status.HTTP_204_NO_CONTENT)
def remove_availability(
    rule_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        availability_service.delete_rule(db, rule_id, current_user.id)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
