"""Shared field types used by several feature schemas."""

import re
from datetime import date, datetime, timezone
from typing import Annotated, Union

from pydantic import Field

from schoolledger.core.exceptions import InvalidInputError


MONTH_YEAR_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"
_MONTH_YEAR_RE = re.compile(MONTH_YEAR_PATTERN)

# Fee months are keyed as "YYYY-MM", e.g. "2025-10"
MonthYear = Annotated[str, Field(pattern=MONTH_YEAR_PATTERN, examples=["2025-10"])]


def validate_month_year(value: str) -> str:
    """Service-level guard for callers that bypass the request schemas."""
    if not isinstance(value, str) or not _MONTH_YEAR_RE.match(value):
        raise InvalidInputError("monthYear must be in YYYY-MM format.")
    return value


def truncate_to_utc_day(value: Union[date, datetime, str]) -> date:
    """
    Normalize an attendance timestamp to its UTC calendar day.
    Aware datetimes are converted to UTC first; naive ones are taken as UTC.
    """
    if isinstance(value, str):
        text = value.strip()
        if len(text) == 10:
            return date.fromisoformat(text)
        value = datetime.fromisoformat(text.replace("Z", "+00:00"))
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value
