# clinic_api/core/errors.py
"""
Error taxonomy shared by every service.

Services raise these exceptions only; the HTTP layer maps them to the
failure envelope with the status code carried by each class.
"""
from typing import Any


class ClinicError(Exception):
    status_code: int = 500

    def __init__(self, message: str, detail: Any = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(ClinicError):
    """Malformed input or a business rule violation."""

    status_code = 400


class AuthenticationError(ClinicError):
    status_code = 401


class ForbiddenError(ClinicError):
    """Authenticated actor lacks the role or ownership required."""

    status_code = 403


class NotFoundError(ClinicError):
    """Referenced id does not resolve or the record is deactivated."""

    status_code = 404


class ConflictError(ClinicError):
    """Scheduling overlap, duplicate unique key or duplicate 1:1 relation."""

    status_code = 409


class UnexpectedError(ClinicError):
    status_code = 500
