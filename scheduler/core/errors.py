"""Domain errors raised by the scheduling services.

Routes never build HTTP responses for these by hand; ``scheduler.main``
registers a single handler that turns any ``SchedulingError`` into a JSON
body with the matching status code.
"""

from fastapi import status


class SchedulingError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Request could not be processed.'

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class NotFoundError(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'


class ConflictError(SchedulingError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Conflict.'


class InvalidInputError(SchedulingError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid input.'


class UnauthorizedError(SchedulingError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = 'Not authenticated.'


class ForbiddenError(SchedulingError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'Forbidden.'
