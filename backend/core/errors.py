"""Error types shared by services and routes.

Each error is an ``HTTPException`` so routes and services can raise them
directly; ``code`` is the machine-readable reason rendered next to ``detail``.
"""

from fastapi import HTTPException, status


class AppError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = 'internal_error'
    default_detail = 'Internal server error.'

    def __init__(self, detail: str | None = None, headers: dict[str, str] | None = None) -> None:
        super().__init__(
            status_code=type(self).status_code,
            detail=detail or self.default_detail,
            headers=headers,
        )


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = 'validation_error'
    default_detail = 'Invalid request.'


class AlreadyCanceled(ValidationError):
    code = 'already_canceled'
    default_detail = 'Appointment is already canceled.'


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = 'not_found'
    default_detail = 'Not found.'


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = 'forbidden'
    default_detail = 'Access denied.'


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = 'conflict'
    default_detail = 'Conflicting request.'


class SlotUnavailable(Conflict):
    code = 'slot_unavailable'
    default_detail = 'Slot is no longer available.'


class OverlappingSlot(Conflict):
    status_code = status.HTTP_400_BAD_REQUEST
    code = 'overlapping_slot'
    default_detail = 'Overlapping availability exists.'


class DuplicateEmail(Conflict):
    status_code = status.HTTP_400_BAD_REQUEST
    code = 'duplicate_email'
    default_detail = 'An account with this email already exists.'


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = 'unauthenticated'
    default_detail = 'Not authenticated.'

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail, headers={'WWW-Authenticate': 'Bearer'})


class Internal(AppError):
    default_detail = 'Database unavailable. Try again later.'
