from datetime import datetime

from fastapi import HTTPException, status
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from scheduler.core import config
from scheduler.core.timeutils import to_local_naive

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python; both accepted on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def database_unavailable() -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=DATABASE_UNAVAILABLE_DETAIL)


def normalize_email(value: str) -> str:
    normalized = value.strip().lower()
    if not normalized:
        raise ValueError('Email is required.')
    local_part, _, domain = normalized.partition('@')
    if not local_part or '.' not in domain or ' ' in normalized:
        raise ValueError('Invalid email address.')
    return normalized


def normalize_optional_text(value: str | None, max_length: int, label: str) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > max_length:
        raise ValueError(f'{label} must be {max_length} characters or fewer.')

    return normalized


def normalize_title(value: str) -> str:
    normalized = value.strip()
    if not normalized:
        raise ValueError('Title is required.')
    if len(normalized) > config.MAX_TITLE_LENGTH:
        raise ValueError(f'Title must be {config.MAX_TITLE_LENGTH} characters or fewer.')
    return normalized


def normalize_instant(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    return to_local_naive(value)
