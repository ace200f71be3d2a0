from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from clinic_api.core.config import get_settings
from clinic_api.models.user import RoleName

settings = get_settings()


def create_access_token(
    subject: str | int,
    role: str,
    expires_delta_minutes: int | None = None,
) -> str:
    """
    Create a JWT access token carrying the user id (sub) and role.

    Token issuance flows (login, refresh) live outside this service; this
    helper exists for tooling and tests.
    """
    if expires_delta_minutes is None:
        expires_delta_minutes = settings.access_token_expire_minutes

    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_delta_minutes)
    to_encode: dict[str, Any] = {
        "sub": str(subject),
        "role": role,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any]:
    """
    Decode and validate a JWT token.
    Raises ValueError with descriptive message if token is invalid or expired.
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        # Check if it's an expiration error
        error_str = str(exc).lower()
        if "expired" in error_str or "exp" in error_str:
            raise ValueError("Token has expired. Please log in again.") from None
        raise ValueError("Invalid token") from exc
    return payload


@dataclass(frozen=True)
class Actor:
    """The authenticated caller a service acts on behalf of."""

    id: UUID
    role: RoleName

    def has_role(self, *roles: RoleName) -> bool:
        return self.role in roles

    @property
    def is_admin(self) -> bool:
        return self.role == RoleName.ADMIN
