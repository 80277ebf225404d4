"""
Auth Module - Business Logic Service
"""
import uuid
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from housing_desk.core.exceptions import ConflictError, UnauthorizedError
from housing_desk.core.logging import get_logger
from housing_desk.core.security import create_access_token, get_password_hash, verify_password
from housing_desk.modules.auth.models import User
from housing_desk.modules.auth.schemas import UserCreate

logger = get_logger(__name__)


class AuthService:
    """User lookup, creation and login."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_id(self, user_id: uuid.UUID) -> User | None:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_user_by_login(self, login: str) -> User | None:
        result = await self.db.execute(select(User).where(User.login == login))
        return result.scalar_one_or_none()

    async def list_active_by_roles(self, roles: Iterable[str]) -> list[User]:
        """Active users holding any of the given roles."""
        result = await self.db.execute(
            select(User).where(
                User.role.in_(list(roles)),
                User.is_active.is_(True),
            )
        )
        return list(result.scalars().all())

    async def create_user(self, data: UserCreate, *, commit: bool = True) -> User:
        """Create a user with a hashed password."""
        if await self.get_user_by_login(data.login):
            raise ConflictError(f"User with login '{data.login}' already exists")

        payload = data.model_dump(exclude={"password"})
        payload["role"] = data.role.value
        user = User(password_hash=get_password_hash(data.password), **payload)
        self.db.add(user)
        if commit:
            await self.db.commit()
            await self.db.refresh(user)
        else:
            await self.db.flush()

        logger.info("User created", user_id=str(user.id), login=user.login, role=user.role)
        return user

    async def authenticate(self, login: str, password: str) -> tuple[User, str]:
        """Check credentials and issue an access token."""
        user = await self.get_user_by_login(login)
        if not user or not verify_password(password, user.password_hash):
            logger.warning("Login failed", login=login)
            raise UnauthorizedError("Invalid login or password")
        if not user.is_active:
            raise UnauthorizedError("User account is disabled")

        token = create_access_token(user.id, extra_claims={"role": user.role})
        logger.info("User logged in", user_id=str(user.id), role=user.role)
        return user, token
