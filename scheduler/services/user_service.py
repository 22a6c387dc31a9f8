import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from scheduler.auth.passwords import hash_password, verify_password
from scheduler.core.errors import ConflictError, NotFoundError, UnauthorizedError
from scheduler.models.user import User

logger = logging.getLogger(__name__)

PROFILE_FIELDS = {'first_name', 'last_name', 'phone'}


def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFoundError('User not found.')
    return user


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email).first()


def create_user(
    db: Session,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    phone: str | None = None,
) -> User:
    if get_user_by_email(db, email) is not None:
        raise ConflictError('User with this email already exists.')

    user = User(
        email=email,
        hashed_password=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        phone=phone,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError('User with this email already exists.') from exc

    db.refresh(user)
    logger.info('Registered user %s', user.id)
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    user = get_user_by_email(db, email)
    if user is None or not verify_password(password, user.hashed_password):
        raise UnauthorizedError('Invalid credentials.')
    return user


def update_profile(db: Session, user: User, changes: dict) -> User:
    for field, value in changes.items():
        if field in PROFILE_FIELDS:
            setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, user: User) -> None:
    user_id = user.id
    db.delete(user)
    db.commit()
    logger.info('Deleted user %s with their availability and appointments', user_id)
