from typing import AsyncGenerator, Callable, Dict

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.auth.security import create_access_token
from app.core.config import Settings
from app.core.models import School, StudentEnrollment
from app.db.session import init_models
from app.main import create_app


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        DATABASE_URL=TEST_DATABASE_URL,
        JWT_SECRET_KEY="test-secret",
        LOG_LEVEL="DEBUG",
        MPESA_BASE_URL="https://mpesa.test",
        MPESA_CONSUMER_KEY="key",
        MPESA_CONSUMER_SECRET="secret",
        MPESA_PASSKEY="passkey",
        MPESA_CALLBACK_URL="https://portal.test/api/v1/mpesa/callback",
        MPESA_BACKOFF_SECONDS=0,
    )


@pytest.fixture()
async def app(settings: Settings) -> AsyncGenerator[FastAPI, None]:
    """App bound to a fresh in-memory database with all tables created."""
    application = create_app(settings)
    await init_models(application.state.engine)
    yield application
    await application.state.stk_client.aclose()
    await application.state.engine.dispose()


@pytest.fixture()
async def db_session(app: FastAPI) -> AsyncGenerator[AsyncSession, None]:
    async with app.state.sessionmaker() as session:
        yield session


@pytest.fixture()
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
async def school(db_session: AsyncSession) -> School:
    s = School(name="Sunrise Academy", status="Active", paybill="600100")
    db_session.add(s)
    await db_session.commit()
    return s


@pytest.fixture()
async def other_school(db_session: AsyncSession) -> School:
    s = School(name="Hillside School", status="Active", paybill="600200")
    db_session.add(s)
    await db_session.commit()
    return s


@pytest.fixture()
async def accounts_user(db_session: AsyncSession, school: School) -> User:
    u = User(school_id=school.id, full_name="Alice Bursar", email="bursar@sunrise.test", role="accounts")
    db_session.add(u)
    await db_session.commit()
    return u


@pytest.fixture()
async def student(db_session: AsyncSession, school: School) -> User:
    u = User(school_id=school.id, full_name="Xavier Otieno", admission="ADM001", role="student")
    db_session.add(u)
    await db_session.flush()
    db_session.add(
        StudentEnrollment(
            student_id=u.id,
            school_id=school.id,
            academic_year=2025,
            grade="Grade 5",
            stream="W",
            status="active",
        )
    )
    await db_session.commit()
    return u


@pytest.fixture()
def auth_headers(settings: Settings) -> Callable[[User], Dict[str, str]]:
    def _headers(user: User) -> Dict[str, str]:
        token = create_access_token(settings, subject={"sub": str(user.id)})
        return {"Authorization": f"Bearer {token}"}

    return _headers
