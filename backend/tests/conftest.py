"""Shared test fixtures for backend tests."""

import os

# Settings are read at import time; point everything at throwaway backends first.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ADMIN_SECRET_KEY"] = "test-admin-secret-key"
os.environ["RATE_LIMIT_PER_MINUTE"] = "0"
os.environ["ENVIRONMENT"] = "test"
os.environ["CLOUDINARY_CLOUD_NAME"] = "demo-cloud"
os.environ["CLOUDINARY_API_KEY"] = "1234567890"
os.environ["CLOUDINARY_API_SECRET"] = "shh-secret"
os.environ["BOOTSTRAP_ADMIN_EMAIL"] = ""

from functools import lru_cache  # noqa: E402
from typing import AsyncGenerator  # noqa: E402

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402

from resolveai.api.deps import get_db  # noqa: E402
from resolveai.auth.jwt import create_employee_token, create_user_token  # noqa: E402
from resolveai.auth.passwords import hash_password  # noqa: E402
from resolveai.database import Base, engine  # noqa: E402
from resolveai.main import app  # noqa: E402
from resolveai.models import Employee, User  # noqa: E402

TestSession = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

PASSWORD = "Secret123!"


@lru_cache(maxsize=None)
def hashed(plain: str) -> str:
    """bcrypt is slow on purpose; hash each test password once per run."""
    return hash_password(plain)


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory schema per test; disposing the engine drops the database."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with TestSession() as session:
        yield session
    await engine.dispose()


async def _add_user(session: AsyncSession, email: str, role: str, name: str) -> User:
    user = User(email=email, name=name, role=role, password_hash=hashed(PASSWORD))
    session.add(user)
    await session.flush()
    return user


async def _add_employee(session: AsyncSession, code: int, role: str, cpf: str,
                        is_active: bool = True) -> Employee:
    employee = Employee(
        employee_code=code,
        name=f"Employee {code}",
        cpf=cpf,
        role=role,
        is_active=is_active,
        password_hash=hashed(PASSWORD),
    )
    session.add(employee)
    await session.flush()
    return employee


@pytest_asyncio.fixture
async def citizen(db_session: AsyncSession) -> User:
    return await _add_user(db_session, "maria@example.com", "USER", "Maria")


@pytest_asyncio.fixture
async def other_citizen(db_session: AsyncSession) -> User:
    return await _add_user(db_session, "joao@example.com", "USER", "João")


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _add_user(db_session, "admin@example.com", "ADMIN", "Admin")


@pytest_asyncio.fixture
async def pothole_employee(db_session: AsyncSession) -> Employee:
    return await _add_employee(db_session, 2123456, "POTHOLE", "11122233344")


@pytest_asyncio.fixture
async def lighting_employee(db_session: AsyncSession) -> Employee:
    return await _add_employee(db_session, 1654321, "PUBLIC_LIGHTING", "55566677788")


@pytest_asyncio.fixture
async def administrative_employee(db_session: AsyncSession) -> Employee:
    return await _add_employee(db_session, 8111111, "ADMINISTRATIVE", "99988877766")


@pytest_asyncio.fixture
async def inactive_employee(db_session: AsyncSession) -> Employee:
    return await _add_employee(db_session, 3999999, "GARBAGE_COLLECTION", "12312312312", is_active=False)


def user_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_user_token(user.id, user.role)}"}


def employee_headers(employee: Employee) -> dict:
    token = create_employee_token(employee.id, employee.employee_code, employee.role)
    return {"Authorization": f"Bearer {token}"}


def _override_db(session: AsyncSession):
    """Create a dependency override for get_db."""
    async def _get_db():
        yield session
    return _get_db


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated HTTP client bound to the test session."""
    app.dependency_overrides[get_db] = _override_db(db_session)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
