"""
Upsert-by-natural-key helpers.

A natural key is the business field combination that identifies a row (for
example school, student and day for attendance). Writing a record whose key
already exists overwrites the stored fields instead of inserting a duplicate,
so re-submitting the same batch converges on the same rows.

The helpers only stage changes on the session; the caller owns the commit, and
an IntegrityError raised there means a concurrent writer inserted the same key
first (retrying is safe).
"""
import logging
from typing import Any, Callable, Dict, Generic, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M")

NaturalKey = Dict[str, Any]


class BulkUpsertResult(BaseModel):
    matched: int = 0
    upserted: int = 0


class UpsertOutcome(Generic[M]):
    """Row written by upsert_one; previous holds the overwritten values (None on insert)."""

    def __init__(self, row: M, previous: Optional[Dict[str, Any]]) -> None:
        self.row = row
        self.previous = previous

    @property
    def created(self) -> bool:
        return self.previous is None


async def find_by_natural_key(db: AsyncSession, model: Type[M], key: NaturalKey) -> Optional[M]:
    # Session autoflush makes rows staged earlier in the same batch visible here
    stmt = select(model).where(*[getattr(model, column) == value for column, value in key.items()])
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


def _write(db: AsyncSession, model: Type[M], existing: Optional[M], key: NaturalKey, values: Dict[str, Any]) -> M:
    if existing is None:
        row = model(**key, **values)
        db.add(row)
        return row
    for column, value in values.items():
        setattr(existing, column, value)
    return existing


async def upsert_one(
    db: AsyncSession,
    model: Type[M],
    key: NaturalKey,
    values: Dict[str, Any],
) -> UpsertOutcome[M]:
    """Insert a row for key, or overwrite values on the row that already has it (last write wins)."""
    existing = await find_by_natural_key(db, model, key)
    previous = None
    if existing is not None:
        previous = {column: getattr(existing, column) for column in values}
    row = _write(db, model, existing, key, values)
    await db.flush()
    return UpsertOutcome(row, previous)


async def bulk_upsert(
    db: AsyncSession,
    model: Type[M],
    records: Sequence[T],
    natural_key: Callable[[T], NaturalKey],
    apply: Callable[[Optional[M], T], Dict[str, Any]],
) -> BulkUpsertResult:
    """
    Apply each incoming record by its natural key.

    apply(existing, incoming) returns the non-key column values to store; existing is
    None when the key is new. Records are applied in order, so a key repeated within
    one batch ends with the last record's values.
    """
    result = BulkUpsertResult()
    for record in records:
        key = natural_key(record)
        existing = await find_by_natural_key(db, model, key)
        values = apply(existing, record)
        _write(db, model, existing, key, values)
        if existing is None:
            result.upserted += 1
        else:
            result.matched += 1
    await db.flush()
    logger.debug(
        "Staged %s upserts: matched=%d upserted=%d",
        model.__name__, result.matched, result.upserted,
    )
    return result
