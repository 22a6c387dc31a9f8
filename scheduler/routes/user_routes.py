from fastapi import APIRouter, Depends, status
from pydantic import field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from scheduler.auth.dependencies import get_current_user
from scheduler.core.errors import ForbiddenError
from scheduler.database import get_db
from scheduler.models.user import User
from scheduler.routes.auth_routes import UserResponse
from scheduler.routes.availability_routes import AvailabilityResponse
from scheduler.routes.common import ApiModel, database_unavailable
from scheduler.services import availability_service, user_service

router = APIRouter(tags=['users'])


def ensure_self(current_user: User, user_id: int) -> None:
    if current_user.id != user_id:
        raise ForbiddenError('You can only modify your own account.')


class PublicProfileResponse(ApiModel):
    """What anyone may see about an owner: enough to address them on a booking page."""

    id: int
    first_name: str
    last_name: str

    @classmethod
    def from_user(cls, user: User) -> 'PublicProfileResponse':
        return cls(id=user.id, first_name=user.first_name, last_name=user.last_name)


class UpdateProfileRequest(ApiModel):
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_name(cls, value: str | None) -> str:
        normalized = (value or '').strip()
        if not normalized:
            raise ValueError('Name cannot be blank.')
        return normalized


@router.patch('/{user_id}', response_model=UserResponse)
def update_user(
    user_id: int,
    data: UpdateProfileRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_self(current_user, user_id)

    try:
        user = user_service.update_profile(db, current_user, data.model_dump(exclude_unset=True))
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return UserResponse.from_user(user)


@router.get('/{user_id}', response_model=PublicProfileResponse)
def get_user(user_id: int, db: Session = Depends(get_db)):
    try:
        user = user_service.get_user(db, user_id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return PublicProfileResponse.from_user(user)


@router.get('/{user_id}/availabilities', response_model=list[AvailabilityResponse])
def get_user_availabilities(user_id: int, db: Session = Depends(get_db)):
    try:
        user_service.get_user(db, user_id)
        rows = availability_service.list_rules(db, user_id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return [AvailabilityResponse.from_row(row) for row in rows]


@router.delete('/{user_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_self(current_user, user_id)

    try:
        user_service.delete_user(db, current_user)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
