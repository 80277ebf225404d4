"""
Pytest Configuration and Fixtures.

Every test gets a fresh in-memory SQLite database.
"""
import os
import uuid

# Test environment - must be set before housing_desk is imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "false"
os.environ["SENTRY_DSN"] = ""
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"

import pytest
from httpx import ASGITransport, AsyncClient

from housing_desk.core.database import async_session_maker, close_db, init_db
from housing_desk.core.security import create_access_token
from housing_desk.modules.auth.models import User, UserRole
from housing_desk.modules.auth.schemas import UserCreate
from housing_desk.modules.auth.service import AuthService
from housing_desk.modules.executors.models import ExecutorSpecialization
from housing_desk.modules.executors.schemas import ExecutorCreate
from housing_desk.modules.executors.service import ExecutorService
from housing_desk.modules.requests.schemas import RequestCreate
from housing_desk.modules.requests.service import RequestService

PASSWORD = "secret123"


@pytest.fixture(autouse=True)
async def database():
    """Create all tables before each test, drop the in-memory db after."""
    await init_db()
    yield
    await close_db()


@pytest.fixture
async def db_session():
    async with async_session_maker() as session:
        yield session


@pytest.fixture
async def client():
    from housing_desk.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


def _login(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


async def create_user(session, role: UserRole = UserRole.RESIDENT, name: str | None = None, **fields) -> User:
    data = UserCreate(
        login=_login(role.value),
        password=PASSWORD,
        name=name or role.value.replace("_", " ").title(),
        role=role,
        **fields,
    )
    return await AuthService(session).create_user(data)


async def create_executor(
    session,
    specialization: ExecutorSpecialization = ExecutorSpecialization.PLUMBER,
    name: str | None = None,
) -> User:
    """Create an executor account; returns the executor's user."""
    executor = await ExecutorService(session).create(
        ExecutorCreate(
            login=_login(specialization.value),
            password=PASSWORD,
            name=name or f"{specialization.value.title()} Executor",
            phone="+998900000000",
            specialization=specialization,
        )
    )
    return executor.user


@pytest.fixture
def auth_headers():
    """Bearer headers for a user."""

    def _headers(user: User) -> dict:
        token = create_access_token(user.id, extra_claims={"role": user.role})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
async def resident(db_session) -> User:
    return await create_user(
        db_session,
        UserRole.RESIDENT,
        name="Aziza Karimova",
        phone="+998901112233",
        address="Chilonzor 5",
        apartment="42",
    )


@pytest.fixture
async def other_resident(db_session) -> User:
    return await create_user(db_session, UserRole.RESIDENT, name="Bobur Aliev", apartment="7")


@pytest.fixture
async def manager(db_session) -> User:
    return await create_user(db_session, UserRole.MANAGER, name="Office Manager")


@pytest.fixture
async def dispatcher(db_session) -> User:
    return await create_user(db_session, UserRole.DISPATCHER, name="Night Dispatcher")


@pytest.fixture
async def admin(db_session) -> User:
    return await create_user(db_session, UserRole.ADMIN, name="Site Admin")


@pytest.fixture
async def marketplace_manager(db_session) -> User:
    return await create_user(db_session, UserRole.MARKETPLACE_MANAGER, name="Shop Manager")


@pytest.fixture
async def plumber(db_session) -> User:
    return await create_executor(db_session, ExecutorSpecialization.PLUMBER, name="Pulat Plumber")


@pytest.fixture
async def second_plumber(db_session) -> User:
    return await create_executor(db_session, ExecutorSpecialization.PLUMBER, name="Sardor Plumber")


@pytest.fixture
async def electrician(db_session) -> User:
    return await create_executor(db_session, ExecutorSpecialization.ELECTRICIAN, name="Elyor Electrician")


@pytest.fixture
async def courier(db_session) -> User:
    return await create_executor(db_session, ExecutorSpecialization.COURIER, name="Kamol Courier")


@pytest.fixture
def request_service(db_session) -> RequestService:
    return RequestService(db_session)


@pytest.fixture
async def new_request(request_service, resident):
    """A plumbing request filed by the resident."""
    return await request_service.create(
        RequestCreate(title="Leaking tap", description="Kitchen tap drips", category="plumber"),
        resident,
    )


@pytest.fixture
async def assigned_request(request_service, new_request, manager, plumber):
    return await request_service.assign(new_request.id, manager, plumber.id)


@pytest.fixture
async def in_progress_request(request_service, assigned_request, plumber):
    return await request_service.start(assigned_request.id, plumber)
