"""
Auth Module - Users, roles and bearer-token login.
"""
from housing_desk.modules.auth.models import User, UserRole

__all__ = ["User", "UserRole"]
