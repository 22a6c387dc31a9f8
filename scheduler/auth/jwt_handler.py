from datetime import datetime, timedelta, timezone

import jwt

from scheduler.core import config

REQUIRED_CLAIMS = ["exp", "sub"]


class InvalidSubjectError(jwt.InvalidTokenError):
    """The token verified but its ``sub`` claim is not a user id."""


def create_access_token(user_id: int, expires_minutes: int | None = None) -> str:
    """Sign a bearer token for ``user_id``; the id travels as a string ``sub`` claim."""
    issued_at = datetime.now(timezone.utc)
    lifetime = timedelta(minutes=expires_minutes or config.JWT_EXPIRES_MINUTES)
    payload = {"sub": str(user_id), "iat": issued_at, "exp": issued_at + lifetime}
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(
        token,
        config.JWT_SECRET_KEY,
        algorithms=[config.JWT_ALGORITHM],
        options={"require": REQUIRED_CLAIMS},
    )


def user_id_from_token(token: str) -> int:
    """Verify ``token`` and return the owner id it was issued for.

    Raises the ``jwt`` exception that describes the failure, or
    ``InvalidSubjectError`` when the subject is not numeric.
    """
    subject = decode_access_token(token)["sub"]
    if not isinstance(subject, str) or not subject.isdigit():
        raise InvalidSubjectError("Token subject is not a user id.")
    return int(subject)
