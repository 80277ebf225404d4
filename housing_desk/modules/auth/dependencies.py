"""
Auth Module - FastAPI Dependencies

Bearer JWT authentication and role checks.
"""
import uuid
from collections.abc import Iterable
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from housing_desk.core.database import get_db
from housing_desk.core.exceptions import ForbiddenError, UnauthorizedError
from housing_desk.core.logging import bind_context, get_logger
from housing_desk.core.security import verify_token
from housing_desk.core.sentry import set_user
from housing_desk.modules.auth.models import STAFF_ROLES, User
from housing_desk.modules.auth.service import AuthService

logger = get_logger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_auth_service(db: Annotated[AsyncSession, Depends(get_db)]) -> AuthService:
    """Get AuthService instance with injected database session."""
    return AuthService(db)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> User:
    """
    Resolve the current user from the bearer token.

    Raises:
        UnauthorizedError: missing/invalid token or unknown/disabled user
    """
    if not credentials:
        raise UnauthorizedError("Authentication required")

    payload = verify_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise UnauthorizedError("Invalid or expired token")

    try:
        user_id = uuid.UUID(payload["sub"])
    except ValueError:
        raise UnauthorizedError("Invalid token subject")

    user = await auth_service.get_user_by_id(user_id)
    if not user:
        logger.warning("Token subject not found", user_id=str(user_id))
        raise UnauthorizedError("User not found")

    if not user.is_active:
        raise UnauthorizedError("User account is disabled")

    bind_context(user_id=str(user.id), role=user.role)
    set_user(str(user.id), user.role)
    return user


def require_role(roles: Iterable[str]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.get("/staff-only", dependencies=[Depends(require_role(STAFF_ROLES))])
        async def staff_endpoint(): ...
    """
    allowed = frozenset(roles)

    async def role_checker(
        current_user: Annotated[User, Depends(get_current_user)],
    ) -> User:
        if current_user.role not in allowed:
            raise ForbiddenError(f"Required role: {', '.join(sorted(allowed))}")
        return current_user

    return role_checker


# Type aliases for dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
StaffUser = Annotated[User, Depends(require_role(STAFF_ROLES))]
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
