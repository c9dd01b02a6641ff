import os
from typing import AsyncGenerator, Dict

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from schoolledger.db.init_db import ensure_tables
from schoolledger.db.session import get_db
from schoolledger.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture()
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database per test; StaticPool keeps every session on the same connection."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await ensure_tables(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture()
def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture()
async def client(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app; each request gets its own session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def register_payload(email: str = "owner@greenfield.edu", **overrides) -> Dict:
    payload = {
        "full_name": "Sam Owner",
        "email": email,
        "password": "StrongPass123",
        "school_name": "Greenfield Public School",
        "institution_type": "School",
        "address": "12 Lake Road",
        "phone": "+911234567890",
    }
    payload.update(overrides)
    return payload


async def register_school(client: AsyncClient, email: str = "owner@greenfield.edu", **overrides) -> Dict:
    response = await client.post("/api/v1/auth/register", json=register_payload(email, **overrides))
    assert response.status_code == 201, response.text
    data = response.json()
    data["headers"] = {"Authorization": f"Bearer {data['access_token']}"}
    return data


@pytest.fixture()
async def admin(client: AsyncClient) -> Dict:
    """Registered school owner: response body plus ready-to-use auth headers."""
    return await register_school(client)


@pytest.fixture()
async def school_class(client: AsyncClient, admin: Dict) -> Dict:
    response = await client.post(
        "/api/v1/classes", json={"name": "Grade 5", "section": "B"}, headers=admin["headers"]
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture()
async def student(client: AsyncClient, admin: Dict, school_class: Dict) -> Dict:
    response = await client.post(
        "/api/v1/students",
        json={"class_id": school_class["id"], "full_name": "Ravi Kumar", "roll_number": "7"},
        headers=admin["headers"],
    )
    assert response.status_code == 201, response.text
    return response.json()
