"""
Auth Module - Database Models
Single-organization user model with a flat role.
"""
from enum import Enum

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from housing_desk.core.models import Base


class UserRole(str, Enum):
    """Roles known to the dashboard."""
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    DIRECTOR = "director"
    MANAGER = "manager"
    DEPARTMENT_HEAD = "department_head"
    DISPATCHER = "dispatcher"
    EXECUTOR = "executor"
    RESIDENT = "resident"
    MARKETPLACE_MANAGER = "marketplace_manager"


# Roles allowed to dispatch, cancel and approve on behalf of residents
STAFF_ROLES: frozenset[str] = frozenset({
    UserRole.SUPER_ADMIN.value,
    UserRole.ADMIN.value,
    UserRole.DIRECTOR.value,
    UserRole.MANAGER.value,
    UserRole.DEPARTMENT_HEAD.value,
    UserRole.DISPATCHER.value,
})

# Roles that receive request notifications addressed to "the office"
OFFICE_NOTIFY_ROLES: frozenset[str] = frozenset({
    UserRole.MANAGER.value,
    UserRole.DISPATCHER.value,
})

ADMIN_ROLES: frozenset[str] = frozenset({
    UserRole.SUPER_ADMIN.value,
    UserRole.ADMIN.value,
})


class User(Base):
    """
    Application user.

    Residents carry their address so requests can snapshot it.
    Executors additionally own an `Executor` profile (executors module).
    """
    __tablename__ = "user"

    __table_args__ = (
        Index("idx_user_role_active", "role", "is_active"),
    )

    login: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    role: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default=UserRole.RESIDENT.value,
    )

    # Resident address
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    apartment: Mapped[str | None] = mapped_column(String(20), nullable=True)
    building: Mapped[str | None] = mapped_column(String(50), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def is_executor(self) -> bool:
        return self.role == UserRole.EXECUTOR.value

    @property
    def is_resident(self) -> bool:
        return self.role == UserRole.RESIDENT.value

    def __repr__(self) -> str:
        return f"<User {self.login} ({self.role})>"
