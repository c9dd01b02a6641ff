from decimal import Decimal
from typing import Dict
from uuid import UUID, uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.api.v1.fees import service as fees_service
from schoolledger.api.v1.fees.schemas import FeeStructureSet
from schoolledger.core import bulk_upsert as upsert_helpers
from schoolledger.core.exceptions import InvalidInputError
from schoolledger.core.models import FeeAuditLog, FeeStructure

from conftest import register_school


async def _create_head(client: AsyncClient, headers: Dict, name: str) -> Dict:
    response = await client.post("/api/v1/fees/heads", json={"name": name}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def _set_structure(client: AsyncClient, headers: Dict, class_id: str, head_id: str, amount: str, month: str = "2025-10"):
    return await client.post(
        "/api/v1/fees/structures",
        json={"class_id": class_id, "fee_head_id": head_id, "month_year": month, "amount": amount},
        headers=headers,
    )


async def test_fee_head_names_are_unique_per_school(client: AsyncClient, admin: Dict) -> None:
    await _create_head(client, admin["headers"], "Transport")

    duplicate = await client.post("/api/v1/fees/heads", json={"name": "Transport"}, headers=admin["headers"])
    assert duplicate.status_code == 409

    other = await register_school(client, email="owner@riverside.edu", school_name="Riverside")
    elsewhere = await client.post("/api/v1/fees/heads", json={"name": "Transport"}, headers=other["headers"])
    assert elsewhere.status_code == 201

    listed = await client.get("/api/v1/fees/heads", headers=admin["headers"])
    assert [h["name"] for h in listed.json()] == ["Tuition Fee", "Transport"]


async def test_set_structure_is_an_upsert(
    client: AsyncClient, db_session: AsyncSession, admin: Dict, school_class: Dict
) -> None:
    head_id = admin["default_fee_head_id"]

    first = await _set_structure(client, admin["headers"], school_class["id"], head_id, "1500")
    assert first.status_code == 200, first.text
    again = await _set_structure(client, admin["headers"], school_class["id"], head_id, "1500")
    changed = await _set_structure(client, admin["headers"], school_class["id"], head_id, "1750")

    assert again.json()["id"] == first.json()["id"]
    assert changed.json()["id"] == first.json()["id"]
    assert Decimal(changed.json()["amount"]) == Decimal("1750")

    rows = (
        await db_session.execute(select(FeeStructure).where(FeeStructure.class_id == UUID(school_class["id"])))
    ).scalars().all()
    assert len(rows) == 1
    assert rows[0].amount == Decimal("1750")

    audit = (
        await db_session.execute(
            select(FeeAuditLog.action_type)
            .where(FeeAuditLog.reference_id == rows[0].id)
            .order_by(FeeAuditLog.created_at)
        )
    ).scalars().all()
    assert audit[0] == "CREATE"
    assert set(audit[1:]) == {"UPDATE"}


async def test_list_structures_in_catalog_order(client: AsyncClient, admin: Dict, school_class: Dict) -> None:
    transport = await _create_head(client, admin["headers"], "Transport")
    await _set_structure(client, admin["headers"], school_class["id"], admin["default_fee_head_id"], "1000")
    await _set_structure(client, admin["headers"], school_class["id"], transport["id"], "300")
    await _set_structure(client, admin["headers"], school_class["id"], transport["id"], "300", month="2025-11")

    response = await client.get(
        "/api/v1/fees/structures",
        params={"class_id": school_class["id"], "month_year": "2025-10"},
        headers=admin["headers"],
    )

    assert response.status_code == 200
    assert [(s["fee_head_name"], Decimal(s["amount"])) for s in response.json()] == [
        ("Tuition Fee", Decimal("1000")),
        ("Transport", Decimal("300")),
    ]


async def test_structure_rejects_unknown_class_and_foreign_fee_head(
    client: AsyncClient, admin: Dict, school_class: Dict
) -> None:
    other = await register_school(client, email="owner@riverside.edu", school_name="Riverside")

    unknown_class = await _set_structure(client, admin["headers"], str(uuid4()), admin["default_fee_head_id"], "100")
    foreign_head = await _set_structure(client, admin["headers"], school_class["id"], other["default_fee_head_id"], "100")

    assert unknown_class.status_code == 404
    assert foreign_head.status_code == 404


async def test_structure_rejects_malformed_month(client: AsyncClient, admin: Dict, school_class: Dict) -> None:
    response = await _set_structure(
        client, admin["headers"], school_class["id"], admin["default_fee_head_id"], "100", month="2025-13"
    )

    assert response.status_code == 422


async def test_service_rejects_negative_amount(db_session: AsyncSession, admin: Dict, school_class: Dict) -> None:
    payload = FeeStructureSet.model_construct(
        class_id=UUID(school_class["id"]),
        fee_head_id=UUID(admin["default_fee_head_id"]),
        month_year="2025-10",
        amount=Decimal("-1"),
    )

    with pytest.raises(InvalidInputError):
        await fees_service.set_fee_structure(db_session, UUID(admin["school"]["id"]), payload)


async def test_fee_head_delete_blocked_while_referenced(client: AsyncClient, admin: Dict, school_class: Dict) -> None:
    unused = await _create_head(client, admin["headers"], "Library")
    used = await _create_head(client, admin["headers"], "Transport")
    await _set_structure(client, admin["headers"], school_class["id"], used["id"], "300")

    deleted = await client.delete(f"/api/v1/fees/heads/{unused['id']}", headers=admin["headers"])
    blocked = await client.delete(f"/api/v1/fees/heads/{used['id']}", headers=admin["headers"])
    missing = await client.delete(f"/api/v1/fees/heads/{unused['id']}", headers=admin["headers"])

    assert deleted.status_code == 204
    assert blocked.status_code == 409
    assert missing.status_code == 404


async def test_structure_amount_with_sub_cent_precision_is_rejected(
    client: AsyncClient, db_session: AsyncSession, admin: Dict, school_class: Dict
) -> None:
    response = await _set_structure(client, admin["headers"], school_class["id"], admin["default_fee_head_id"], "10.125")
    payload = FeeStructureSet.model_construct(
        class_id=UUID(school_class["id"]),
        fee_head_id=UUID(admin["default_fee_head_id"]),
        month_year="2025-10",
        amount=Decimal("10.125"),
    )

    assert response.status_code == 422
    with pytest.raises(InvalidInputError):
        await fees_service.set_fee_structure(db_session, UUID(admin["school"]["id"]), payload)
    assert (await db_session.execute(select(FeeStructure))).scalars().all() == []


async def test_structure_upsert_losing_a_race_is_a_conflict(
    client: AsyncClient, db_session: AsyncSession, admin: Dict, school_class: Dict, monkeypatch
) -> None:
    head_id = admin["default_fee_head_id"]
    first = await _set_structure(client, admin["headers"], school_class["id"], head_id, "1000")
    assert first.status_code == 200

    async def key_not_yet_visible(db, model, key):
        return None

    # a concurrent writer inserted the same key after our lookup
    monkeypatch.setattr(upsert_helpers, "find_by_natural_key", key_not_yet_visible)
    raced = await _set_structure(client, admin["headers"], school_class["id"], head_id, "1200")

    assert raced.status_code == 409
    rows = (await db_session.execute(select(FeeStructure))).scalars().all()
    assert [r.amount for r in rows] == [Decimal("1000")]
    audit = (
        await db_session.execute(
            select(FeeAuditLog.action_type).where(FeeAuditLog.reference_table == "fee_structures")
        )
    ).scalars().all()
    assert audit == ["CREATE"]
