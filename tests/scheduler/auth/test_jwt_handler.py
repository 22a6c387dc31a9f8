from datetime import datetime, timedelta, timezone

import jwt
import pytest

from scheduler.auth import jwt_handler
from scheduler.core import config


def _sign(payload: dict) -> str:
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def _in(minutes: int) -> datetime:
    return datetime.now(timezone.utc) + timedelta(minutes=minutes)


def test_token_carries_user_id_as_string_subject() -> None:
    token = jwt_handler.create_access_token(42)

    payload = jwt_handler.decode_access_token(token)

    assert payload['sub'] == '42'
    assert payload['exp'] > payload['iat']
    assert jwt_handler.user_id_from_token(token) == 42


def test_custom_lifetime_is_honored() -> None:
    payload = jwt_handler.decode_access_token(jwt_handler.create_access_token(7, expires_minutes=5))

    assert payload['exp'] - payload['iat'] == 5 * 60


@pytest.mark.parametrize('subject', ['abc', '', '-3'])
def test_non_numeric_subject_is_rejected(subject) -> None:
    token = _sign({'sub': subject, 'exp': _in(5)})

    with pytest.raises(jwt_handler.InvalidSubjectError):
        jwt_handler.user_id_from_token(token)


def test_missing_subject_is_rejected() -> None:
    with pytest.raises(jwt.MissingRequiredClaimError):
        jwt_handler.user_id_from_token(_sign({'exp': _in(5)}))


def test_missing_expiry_is_rejected() -> None:
    with pytest.raises(jwt.MissingRequiredClaimError):
        jwt_handler.user_id_from_token(_sign({'sub': '1'}))


def test_expired_token_is_rejected() -> None:
    with pytest.raises(jwt.ExpiredSignatureError):
        jwt_handler.user_id_from_token(_sign({'sub': '1', 'exp': _in(-1)}))


def test_token_signed_with_other_key_is_rejected() -> None:
    forged = jwt.encode({'sub': '1', 'exp': _in(5)}, 'not-the-secret-key-but-long-enough!!', algorithm=config.JWT_ALGORITHM)

    with pytest.raises(jwt.InvalidSignatureError):
        jwt_handler.user_id_from_token(forged)
