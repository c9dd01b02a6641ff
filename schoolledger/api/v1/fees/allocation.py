"""
Lump-sum payment allocation.

Splits one payment amount across a student's outstanding fee-head balances,
greedily and in the order the balances are given (fee catalog order). Pure
function: no I/O, same input always gives the same split.
"""
from decimal import Decimal
from typing import List, Sequence, Union
from uuid import UUID

from pydantic import BaseModel

from schoolledger.core.exceptions import InvalidInputError


class OutstandingDue(BaseModel):
    fee_head_id: UUID
    balance: Decimal


class AllocationItem(BaseModel):
    fee_head_id: UUID
    amount_paid: Decimal


class Allocation(BaseModel):
    items: List[AllocationItem]
    # Part of the amount no positive balance could absorb; callers must reject payments with remainder > 0
    remainder: Decimal


def _to_decimal(val: Union[Decimal, int, float, str]) -> Decimal:
    return val if isinstance(val, Decimal) else Decimal(str(val))


def allocate(amount: Union[Decimal, int, float, str], dues: Sequence[OutstandingDue]) -> Allocation:
    """
    Allocate amount to dues in order: each due with a positive balance takes
    min(remaining, balance) until the amount is used up or the dues run out.

    Heads with balance <= 0 are skipped and zero items are never emitted, so
    sum(items) + remainder == amount always holds.
    """
    remaining = _to_decimal(amount)
    if remaining <= 0:
        raise InvalidInputError("Payment amount must be positive.")

    items: List[AllocationItem] = []
    for due in dues:
        if remaining <= 0:
            break
        balance = _to_decimal(due.balance)
        if balance <= 0:
            continue
        portion = min(remaining, balance)
        items.append(AllocationItem(fee_head_id=due.fee_head_id, amount_paid=portion))
        remaining -= portion

    return Allocation(items=items, remainder=remaining)
