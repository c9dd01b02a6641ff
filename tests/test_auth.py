from uuid import UUID

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.auth import services as auth_services
from schoolledger.auth.models import User
from schoolledger.auth.security import hash_password
from schoolledger.core.models import FeeHead, School, SchoolClass

from conftest import register_payload, register_school


async def _count(db: AsyncSession, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


async def test_register_bootstraps_school(client: AsyncClient, db_session: AsyncSession) -> None:
    data = await register_school(client, email="Principal@Greenfield.edu")

    school_id = UUID(data["school"]["id"])
    owner_id = UUID(data["owner"]["id"])
    assert data["owner"]["role"] == "Admin"
    assert data["owner"]["email"] == "principal@greenfield.edu"
    assert data["school"]["owner_user_id"] == str(owner_id)
    assert data["default_class_count"] == 15

    school = (await db_session.execute(select(School).where(School.id == school_id))).scalar_one()
    assert school.owner_user_id == owner_id

    class_names = (
        await db_session.execute(select(SchoolClass.name).where(SchoolClass.school_id == school_id))
    ).scalars().all()
    assert len(class_names) == 15
    assert {"Playgroup", "Nursery", "KG", "Grade 1", "Grade 12"} <= set(class_names)

    fee_heads = (await db_session.execute(select(FeeHead).where(FeeHead.school_id == school_id))).scalars().all()
    assert [fh.name for fh in fee_heads] == ["Tuition Fee"]
    assert str(fee_heads[0].id) == data["default_fee_head_id"]


async def test_register_college_gets_no_default_classes(client: AsyncClient, db_session: AsyncSession) -> None:
    data = await register_school(client, email="dean@city.edu", institution_type="College")

    assert data["default_class_count"] == 0
    school_id = UUID(data["school"]["id"])
    class_count = (
        await db_session.execute(select(func.count(SchoolClass.id)).where(SchoolClass.school_id == school_id))
    ).scalar_one()
    assert class_count == 0


async def test_register_duplicate_email_conflicts(client: AsyncClient, db_session: AsyncSession) -> None:
    await register_school(client, email="owner@greenfield.edu")

    response = await client.post(
        "/api/v1/auth/register",
        json=register_payload("OWNER@greenfield.edu", school_name="Another School"),
    )

    assert response.status_code == 409
    assert await _count(db_session, School) == 1


async def test_register_failure_leaves_no_partial_school(
    client: AsyncClient, db_session: AsyncSession, monkeypatch: pytest.MonkeyPatch
) -> None:
    def broken_fee_head(school_id):
        raise RuntimeError("fee head insert failed")

    monkeypatch.setattr(auth_services, "build_default_fee_head", broken_fee_head)

    response = await client.post("/api/v1/auth/register", json=register_payload())

    assert response.status_code == 500
    assert response.json()["detail"] == "Internal server error"
    assert await _count(db_session, School) == 0
    assert await _count(db_session, User) == 0
    assert await _count(db_session, SchoolClass) == 0
    assert await _count(db_session, FeeHead) == 0


async def test_login_success(client: AsyncClient) -> None:
    await register_school(client, email="owner@greenfield.edu")

    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "Owner@greenfield.edu", "password": "StrongPass123"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["access_token"]
    assert data["user"]["role"] == "Admin"


async def test_login_wrong_password(client: AsyncClient) -> None:
    await register_school(client, email="owner@greenfield.edu")

    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "owner@greenfield.edu", "password": "WrongPass123"},
    )

    assert response.status_code == 401


async def test_protected_route_requires_token(client: AsyncClient) -> None:
    response = await client.get("/api/v1/fees/heads")

    assert response.status_code == 401


async def test_parent_cannot_manage_fees(client: AsyncClient, db_session: AsyncSession, admin) -> None:
    parent = User(
        school_id=UUID(admin["school"]["id"]),
        full_name="Pat Parent",
        email="parent@greenfield.edu",
        password_hash=hash_password("ParentPass123"),
        role="Parent",
        status="ACTIVE",
    )
    db_session.add(parent)
    await db_session.commit()

    login = await client.post(
        "/api/v1/auth/login",
        json={"email": "parent@greenfield.edu", "password": "ParentPass123"},
    )
    assert login.status_code == 200
    headers = {"Authorization": f"Bearer {login.json()['access_token']}"}

    response = await client.get("/api/v1/fees/heads", headers=headers)

    assert response.status_code == 403
