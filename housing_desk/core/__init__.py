from housing_desk.core.config import settings
from housing_desk.core.database import get_db
from housing_desk.core.security import create_access_token, pwd_context, verify_token

__all__ = ["settings", "get_db", "pwd_context", "create_access_token", "verify_token"]
