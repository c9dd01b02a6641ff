from decimal import Decimal
from typing import Dict
from uuid import UUID, uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.api.v1.grades import service as grades_service
from schoolledger.api.v1.grades.schemas import GradeIn
from schoolledger.core import bulk_upsert as upsert_helpers
from schoolledger.core.exceptions import InvalidInputError
from schoolledger.core.models import Grade, StudentAttendance


async def _attendance_rows(db: AsyncSession) -> int:
    return (await db.execute(select(func.count(StudentAttendance.id)))).scalar_one()


async def test_attendance_resubmission_is_idempotent(
    client: AsyncClient, db_session: AsyncSession, admin: Dict, student: Dict
) -> None:
    batch = [{"student_id": student["id"], "date": "2025-10-01", "status": "Present"}]

    first = await client.post("/api/v1/attendance", json=batch, headers=admin["headers"])
    second = await client.post("/api/v1/attendance", json=batch, headers=admin["headers"])

    assert first.status_code == 200, first.text
    assert (first.json()["matched"], first.json()["upserted"]) == (0, 1)
    assert (second.json()["matched"], second.json()["upserted"]) == (1, 0)
    assert await _attendance_rows(db_session) == 1


async def test_attendance_same_utc_day_overwrites_status(
    client: AsyncClient, admin: Dict, school_class: Dict, student: Dict
) -> None:
    morning = [{"student_id": student["id"], "date": "2025-10-01T08:15:00Z", "status": "Present"}]
    evening = [{"student_id": student["id"], "date": "2025-10-01T18:30:00+00:00", "status": "Late"}]

    await client.post("/api/v1/attendance", json=morning, headers=admin["headers"])
    await client.post("/api/v1/attendance", json=evening, headers=admin["headers"])

    response = await client.get(
        "/api/v1/attendance",
        params={"date": "2025-10-01", "class_id": school_class["id"]},
        headers=admin["headers"],
    )

    assert response.status_code == 200
    records = response.json()["records"]
    assert [(r["student_name"], r["status"], r["marked_by_name"]) for r in records] == [
        ("Ravi Kumar", "Late", "Sam Owner")
    ]


async def test_attendance_key_repeated_in_one_batch_keeps_last(
    client: AsyncClient, db_session: AsyncSession, admin: Dict, student: Dict
) -> None:
    batch = [
        {"student_id": student["id"], "date": "2025-10-02", "status": "Absent"},
        {"student_id": student["id"], "date": "2025-10-02", "status": "Leave"},
    ]

    response = await client.post("/api/v1/attendance", json=batch, headers=admin["headers"])

    assert response.status_code == 200
    statuses = (await db_session.execute(select(StudentAttendance.status))).scalars().all()
    assert statuses == ["Leave"]


async def test_attendance_batch_with_unknown_student_writes_nothing(
    client: AsyncClient, db_session: AsyncSession, admin: Dict, student: Dict
) -> None:
    batch = [
        {"student_id": student["id"], "date": "2025-10-01", "status": "Present"},
        {"student_id": str(uuid4()), "date": "2025-10-01", "status": "Present"},
    ]

    response = await client.post("/api/v1/attendance", json=batch, headers=admin["headers"])

    assert response.status_code == 404
    assert await _attendance_rows(db_session) == 0


async def test_attendance_rejects_empty_batch_and_unknown_status(
    client: AsyncClient, admin: Dict, student: Dict
) -> None:
    empty = await client.post("/api/v1/attendance", json=[], headers=admin["headers"])
    bad_status = await client.post(
        "/api/v1/attendance",
        json=[{"student_id": student["id"], "date": "2025-10-01", "status": "Sick"}],
        headers=admin["headers"],
    )

    assert empty.status_code == 400
    assert bad_status.status_code == 422


async def _exam(client: AsyncClient, headers: Dict, name: str = "Mid-Terms") -> Dict:
    response = await client.post(
        "/api/v1/exams", json={"name": name, "academic_year": "2025-2026"}, headers=headers
    )
    assert response.status_code == 201, response.text
    return response.json()


async def test_grades_bulk_upsert_by_subject(
    client: AsyncClient, db_session: AsyncSession, admin: Dict, school_class: Dict, student: Dict
) -> None:
    exam = await _exam(client, admin["headers"])
    entry = {
        "student_id": student["id"],
        "class_id": school_class["id"],
        "exam_id": exam["id"],
        "subject": "Mathematics",
        "obtained_marks": "72",
    }

    first = await client.post("/api/v1/grades/bulk", json=[entry], headers=admin["headers"])
    second = await client.post(
        "/api/v1/grades/bulk", json=[{**entry, "obtained_marks": "81"}], headers=admin["headers"]
    )

    assert (first.json()["matched"], first.json()["upserted"]) == (0, 1)
    assert (second.json()["matched"], second.json()["upserted"]) == (1, 0)
    grades = (await db_session.execute(select(Grade))).scalars().all()
    assert len(grades) == 1
    assert grades[0].obtained_marks == Decimal("81")
    assert grades[0].total_marks == Decimal("100")

    listed = await client.get(
        "/api/v1/grades",
        params={"exam_id": exam["id"], "class_id": school_class["id"], "subject": "Mathematics"},
        headers=admin["headers"],
    )
    assert [(g["student_name"], Decimal(g["obtained_marks"])) for g in listed.json()] == [
        ("Ravi Kumar", Decimal("81"))
    ]


async def test_grades_batch_with_unknown_exam_writes_nothing(
    client: AsyncClient, db_session: AsyncSession, admin: Dict, school_class: Dict, student: Dict
) -> None:
    exam = await _exam(client, admin["headers"])
    base = {"student_id": student["id"], "class_id": school_class["id"], "subject": "Science", "obtained_marks": "50"}

    response = await client.post(
        "/api/v1/grades/bulk",
        json=[{**base, "exam_id": exam["id"]}, {**base, "exam_id": str(uuid4())}],
        headers=admin["headers"],
    )

    assert response.status_code == 404
    assert (await db_session.execute(select(func.count(Grade.id)))).scalar_one() == 0


async def test_report_card_and_exam_delete_guard(
    client: AsyncClient, admin: Dict, school_class: Dict, student: Dict
) -> None:
    exam = await _exam(client, admin["headers"])
    spare = await _exam(client, admin["headers"], name="Finals")
    base = {"student_id": student["id"], "class_id": school_class["id"], "exam_id": exam["id"]}
    await client.post(
        "/api/v1/grades/bulk",
        json=[
            {**base, "subject": "Science", "obtained_marks": "64"},
            {**base, "subject": "English", "obtained_marks": "88", "total_marks": "90"},
        ],
        headers=admin["headers"],
    )

    card = await client.get(
        "/api/v1/reports/report-card",
        params={"student_id": student["id"], "exam_id": exam["id"]},
        headers=admin["headers"],
    )
    assert card.status_code == 200
    body = card.json()
    assert body["student"]["class_name"] == "Grade 5"
    assert [g["subject"] for g in body["grades"]] == ["English", "Science"]
    assert Decimal(body["total_obtained"]) == Decimal("152")
    assert Decimal(body["total_marks"]) == Decimal("190")

    blocked = await client.delete(f"/api/v1/exams/{exam['id']}", headers=admin["headers"])
    deleted = await client.delete(f"/api/v1/exams/{spare['id']}", headers=admin["headers"])
    assert blocked.status_code == 409
    assert deleted.status_code == 204

    duplicate = await client.post(
        "/api/v1/exams", json={"name": "Mid-Terms", "academic_year": "2025-2026"}, headers=admin["headers"]
    )
    assert duplicate.status_code == 409


async def test_operations_summary(client: AsyncClient, admin: Dict, school_class: Dict, student: Dict) -> None:
    await client.post(
        "/api/v1/attendance",
        json=[
            {"student_id": student["id"], "date": "2025-10-01", "status": "Present"},
            {"student_id": student["id"], "date": "2025-10-02", "status": "Absent"},
            {"student_id": student["id"], "date": "2025-11-15", "status": "Present"},
        ],
        headers=admin["headers"],
    )
    await client.post(
        "/api/v1/fees/payments",
        json={
            "student_id": student["id"],
            "month_year": "2025-10",
            "items": [{"fee_head_id": admin["default_fee_head_id"], "amount_paid": "250"}],
            "total_amount_paid": "250",
            "payment_date": "2025-10-05T10:00:00Z",
        },
        headers=admin["headers"],
    )

    response = await client.get(
        "/api/v1/reports/summary",
        params={"start_date": "2025-10-01", "end_date": "2025-10-31"},
        headers=admin["headers"],
    )

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["student_count"] == 1
    assert body["attendance"] == {"present": 1, "absent": 1, "late": 0, "leave": 0, "total_records": 2}
    assert Decimal(body["financial"]["total_collected_in_period"]) == Decimal("250")

    reversed_range = await client.get(
        "/api/v1/reports/summary",
        params={"start_date": "2025-10-31", "end_date": "2025-10-01"},
        headers=admin["headers"],
    )
    assert reversed_range.status_code == 400


async def _key_not_yet_visible(db, model, key):
    return None


async def test_attendance_losing_a_race_is_a_conflict(
    client: AsyncClient, db_session: AsyncSession, admin: Dict, student: Dict, monkeypatch
) -> None:
    first = await client.post(
        "/api/v1/attendance",
        json=[{"student_id": student["id"], "date": "2025-10-01", "status": "Present"}],
        headers=admin["headers"],
    )
    assert first.status_code == 200

    monkeypatch.setattr(upsert_helpers, "find_by_natural_key", _key_not_yet_visible)
    raced = await client.post(
        "/api/v1/attendance",
        json=[{"student_id": student["id"], "date": "2025-10-01", "status": "Absent"}],
        headers=admin["headers"],
    )

    assert raced.status_code == 409
    statuses = (await db_session.execute(select(StudentAttendance.status))).scalars().all()
    assert statuses == ["Present"]


async def test_grades_losing_a_race_is_a_conflict(
    client: AsyncClient, db_session: AsyncSession, admin: Dict, school_class: Dict, student: Dict, monkeypatch
) -> None:
    exam = await _exam(client, admin["headers"])
    entry = {
        "student_id": student["id"],
        "class_id": school_class["id"],
        "exam_id": exam["id"],
        "subject": "Mathematics",
        "obtained_marks": "72",
    }
    first = await client.post("/api/v1/grades/bulk", json=[entry], headers=admin["headers"])
    assert first.status_code == 200

    monkeypatch.setattr(upsert_helpers, "find_by_natural_key", _key_not_yet_visible)
    raced = await client.post(
        "/api/v1/grades/bulk", json=[{**entry, "obtained_marks": "90"}], headers=admin["headers"]
    )

    assert raced.status_code == 409
    marks = (await db_session.execute(select(Grade.obtained_marks))).scalars().all()
    assert marks == [Decimal("72")]


async def test_grades_outside_column_range_are_rejected(
    client: AsyncClient, db_session: AsyncSession, admin: Dict, school_class: Dict, student: Dict
) -> None:
    exam = await _exam(client, admin["headers"])
    base = {"student_id": student["id"], "class_id": school_class["id"], "exam_id": exam["id"], "subject": "Physics"}

    too_large = await client.post(
        "/api/v1/grades/bulk",
        json=[{**base, "obtained_marks": "10000", "total_marks": "10000"}],
        headers=admin["headers"],
    )
    too_precise = await client.post(
        "/api/v1/grades/bulk", json=[{**base, "obtained_marks": "72.125"}], headers=admin["headers"]
    )
    unchecked = GradeIn.model_construct(
        **{k: UUID(v) for k, v in base.items() if k.endswith("_id")},
        subject="Physics",
        obtained_marks=Decimal("10000"),
        total_marks=Decimal("10000"),
        remarks=None,
    )

    assert too_large.status_code == 422
    assert too_precise.status_code == 422
    with pytest.raises(InvalidInputError):
        await grades_service.save_grades_bulk(db_session, UUID(admin["school"]["id"]), [unchecked])
    assert (await db_session.execute(select(func.count(Grade.id)))).scalar_one() == 0
