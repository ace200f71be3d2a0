# clinic_api/dependencies/authz.py
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from clinic_api.core.database import get_db
from clinic_api.core.errors import AuthenticationError, ForbiddenError
from clinic_api.core.security import Actor, decode_token
from clinic_api.models.user import RoleName, User
from clinic_api.services.lookups import get_active

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Actor:
    """
    Dependency to resolve the caller from a JWT bearer token.

    The role is read from the stored user, not from the token, so a role
    change takes effect without reissuing tokens.
    """
    if credentials is None:
        raise AuthenticationError("Authentication required")

    try:
        payload = decode_token(credentials.credentials)
    except ValueError as exc:
        raise AuthenticationError(str(exc)) from None

    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        raise AuthenticationError("Invalid token payload") from None

    user = get_active(db, User, user_id)
    if not user:
        raise AuthenticationError("User not found or deactivated")

    return Actor(id=user.id, role=user.role)


def require_roles(*required_roles: RoleName | str):
    """
    Dependency factory for role-based access.

    Usage:

    @router.post("")
    def create(actor: Actor = Depends(require_roles(RoleName.DOCTOR, RoleName.ADMIN))):
        ...

    Role names are compared case-insensitively.
    """
    required = {RoleName(r) for r in required_roles}

    def dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in required:
            raise ForbiddenError(
                "Insufficient role permissions.",
                detail={"required_roles": sorted(r.value for r in required)},
            )
        return actor

    return dependency
