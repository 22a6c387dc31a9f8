from fastapi import APIRouter, Depends, status
from pydantic import Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from scheduler.auth import jwt_handler
from scheduler.auth.dependencies import get_current_user
from scheduler.database import get_db
from scheduler.models.user import User
from scheduler.routes.common import ApiModel, database_unavailable, normalize_email
from scheduler.services import user_service

router = APIRouter(tags=['auth'])

MIN_PASSWORD_LENGTH = 8


class LoginRequest(ApiModel):
    email: str
    password: str = Field(min_length=1)

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return normalize_email(value)


class SignupRequest(LoginRequest):
    password: str = Field(min_length=MIN_PASSWORD_LENGTH, max_length=72)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone: str | None = None

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Name is required.')
        return normalized


class UserResponse(ApiModel):
    id: int
    email: str
    first_name: str
    last_name: str
    phone: str | None = None

    @classmethod
    def from_user(cls, user: User) -> 'UserResponse':
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            phone=user.phone,
        )


class TokenResponse(ApiModel):
    token: str
    token_type: str = 'bearer'
    user: UserResponse


def issue_token(user: User) -> TokenResponse:
    token = jwt_handler.create_access_token(user.id)
    return TokenResponse(token=token, user=UserResponse.from_user(user))


@router.post('/signup', response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def signup(data: SignupRequest, db: Session = Depends(get_db)):
    try:
        user = user_service.create_user(
            db,
            email=data.email,
            password=data.password,
            first_name=data.first_name,
            last_name=data.last_name,
            phone=data.phone,
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return issue_token(user)


@router.post('/login', response_model=TokenResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    try:
        user = user_service.authenticate(db, data.email, data.password)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return issue_token(user)


@router.get('/me', response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return UserResponse.from_user(current_user)
