from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from scheduler.auth.dependencies import get_current_user
from scheduler.core import config
from scheduler.core.timeutils import local_now
from scheduler.database import get_db
from scheduler.models.appointment import Appointment, AppointmentStatus
from scheduler.models.user import User
from scheduler.routes.common import (
    ApiModel,
    database_unavailable,
    normalize_email,
    normalize_instant,
    normalize_optional_text,
    normalize_title,
)
from scheduler.services import appointment_service

router = APIRouter(tags=['appointments'])


class AppointmentFields(ApiModel):
    invitee_email: str
    invitee_name: str | None = None
    title: str
    description: str | None = None
    start_date: datetime
    end_date: datetime

    @field_validator('invitee_email')
    @classmethod
    def validate_invitee_email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator('invitee_name')
    @classmethod
    def validate_invitee_name(cls, value: str | None) -> str | None:
        return normalize_optional_text(value, config.MAX_TITLE_LENGTH, 'Invitee name')

    @field_validator('title')
    @classmethod
    def validate_title(cls, value: str) -> str:
        return normalize_title(value)

    @field_validator('description')
    @classmethod
    def validate_description(cls, value: str | None) -> str | None:
        return normalize_optional_text(value, config.MAX_DESCRIPTION_LENGTH, 'Description')

    @field_validator('start_date', 'end_date')
    @classmethod
    def validate_instant(cls, value: datetime) -> datetime:
        return normalize_instant(value)


class CreateAppointmentRequest(AppointmentFields):
    status: AppointmentStatus = AppointmentStatus.PENDING

    @field_validator('status')
    @classmethod
    def validate_initial_status(cls, value: AppointmentStatus) -> AppointmentStatus:
        if value not in (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED):
            raise ValueError('New appointments must be pending or confirmed.')
        return value


class BookAppointmentRequest(AppointmentFields):
    user_id: int


class UpdateAppointmentRequest(ApiModel):
    invitee_email: str | None = None
    invitee_name: str | None = None
    title: str | None = None
    description: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    status: AppointmentStatus | None = None

    @field_validator('invitee_email')
    @classmethod
    def validate_invitee_email(cls, value: str | None) -> str | None:
        if value is None:
            raise ValueError('Invitee email cannot be removed.')
        return normalize_email(value)

    @field_validator('title')
    @classmethod
    def validate_title(cls, value: str | None) -> str | None:
        if value is None:
            raise ValueError('Title cannot be removed.')
        return normalize_title(value)

    @field_validator('invitee_name')
    @classmethod
    def validate_invitee_name(cls, value: str | None) -> str | None:
        return normalize_optional_text(value, config.MAX_TITLE_LENGTH, 'Invitee name')

    @field_validator('description')
    @classmethod
    def validate_description(cls, value: str | None) -> str | None:
        return normalize_optional_text(value, config.MAX_DESCRIPTION_LENGTH, 'Description')

    @field_validator('start_date', 'end_date')
    @classmethod
    def validate_instant(cls, value: datetime | None) -> datetime | None:
        return normalize_instant(value)

    def to_changes(self) -> dict:
        changes = self.model_dump(exclude_unset=True)
        if 'start_date' in changes:
            changes['start_time'] = changes.pop('start_date')
        if 'end_date' in changes:
            changes['end_time'] = changes.pop('end_date')
        return changes


class AppointmentResponse(ApiModel):
    id: int
    user_id: int
    invitee_email: str
    invitee_name: str | None = None
    title: str
    description: str | None = None
    start_date: datetime
    end_date: datetime
    duration_minutes: int
    status: AppointmentStatus
    created_at: datetime | None = None

    @classmethod
    def from_appointment(cls, appointment: Appointment) -> 'AppointmentResponse':
        return cls(
            id=appointment.id,
            user_id=appointment.user_id,
            invitee_email=appointment.invitee_email,
            invitee_name=appointment.invitee_name,
            title=appointment.title,
            description=appointment.description,
            start_date=appointment.start_time,
            end_date=appointment.end_time,
            duration_minutes=int((appointment.end_time - appointment.start_time).total_seconds() // 60),
            status=AppointmentStatus(appointment.status),
            created_at=appointment.created_at,
        )


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        appointment = appointment_service.create_owner_appointment(
            db,
            user_id=current_user.id,
            invitee_email=data.invitee_email,
            title=data.title,
            start_time=data.start_date,
            end_time=data.end_date,
            invitee_name=data.invitee_name,
            description=data.description,
            status=data.status,
        )
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return AppointmentResponse.from_appointment(appointment)


@router.get('', response_model=list[AppointmentResponse])
def list_appointments(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        appointments = appointment_service.list_appointments(db, current_user.id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return [AppointmentResponse.from_appointment(appointment) for appointment in appointments]


@router.get('/upcoming', response_model=list[AppointmentResponse])
def list_upcoming_appointments(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        appointments = appointment_service.list_upcoming_appointments(db, current_user.id, local_now())
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return [AppointmentResponse.from_appointment(appointment) for appointment in appointments]


@router.post('/book', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(data: BookAppointmentRequest, db: Session = Depends(get_db)):
    try:
        appointment = appointment_service.book_public_appointment(
            db,
            user_id=data.user_id,
            invitee_email=data.invitee_email,
            title=data.title,
            start_time=data.start_date,
            end_time=data.end_date,
            now=local_now(),
            invitee_name=data.invitee_name,
            description=data.description,
        )
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return AppointmentResponse.from_appointment(appointment)


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        appointment = appointment_service.get_appointment(db, appointment_id, current_user.id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return AppointmentResponse.from_appointment(appointment)


@router.patch('/{appointment_id}', response_model=AppointmentResponse)
def update_appointment(
    appointment_id: int,
    data: UpdateAppointmentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        appointment = appointment_service.update_appointment(
            db,
            appointment_id,
            current_user.id,
            data.to_changes(),
        )
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return AppointmentResponse.from_appointment(appointment)


@router.delete('/{appointment_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        appointment_service.delete_appointment(db, appointment_id, current_user.id)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
