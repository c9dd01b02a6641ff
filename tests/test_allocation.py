from decimal import Decimal
from uuid import uuid4

import pytest

from schoolledger.api.v1.fees.allocation import OutstandingDue, allocate
from schoolledger.core.exceptions import InvalidInputError


TUITION = uuid4()
TRANSPORT = uuid4()
LAB = uuid4()


def test_fills_heads_in_catalog_order() -> None:
    dues = [
        OutstandingDue(fee_head_id=TUITION, balance=Decimal("100")),
        OutstandingDue(fee_head_id=TRANSPORT, balance=Decimal("50")),
    ]

    result = allocate(Decimal("120"), dues)

    assert [(i.fee_head_id, i.amount_paid) for i in result.items] == [
        (TUITION, Decimal("100")),
        (TRANSPORT, Decimal("20")),
    ]
    assert result.remainder == Decimal("0")


def test_overflow_is_returned_as_remainder() -> None:
    result = allocate(Decimal("80"), [OutstandingDue(fee_head_id=TUITION, balance=Decimal("50"))])

    assert [(i.fee_head_id, i.amount_paid) for i in result.items] == [(TUITION, Decimal("50"))]
    assert result.remainder == Decimal("30")


def test_settled_and_overpaid_heads_are_skipped() -> None:
    dues = [
        OutstandingDue(fee_head_id=TUITION, balance=Decimal("0")),
        OutstandingDue(fee_head_id=TRANSPORT, balance=Decimal("-25")),
        OutstandingDue(fee_head_id=LAB, balance=Decimal("40")),
    ]

    result = allocate(Decimal("30"), dues)

    assert [i.fee_head_id for i in result.items] == [LAB]
    assert result.items[0].amount_paid == Decimal("30")
    assert result.remainder == Decimal("0")


def test_no_dues_leaves_everything_in_remainder() -> None:
    result = allocate(Decimal("10"), [])

    assert result.items == []
    assert result.remainder == Decimal("10")


@pytest.mark.parametrize("amount", ["1", "75.50", "150", "151", "500"])
def test_amount_is_conserved_and_items_are_bounded(amount: str) -> None:
    dues = [
        OutstandingDue(fee_head_id=TUITION, balance=Decimal("100")),
        OutstandingDue(fee_head_id=TRANSPORT, balance=Decimal("50")),
        OutstandingDue(fee_head_id=LAB, balance=Decimal("-5")),
    ]
    balances = {d.fee_head_id: d.balance for d in dues}

    result = allocate(Decimal(amount), dues)

    assert sum((i.amount_paid for i in result.items), Decimal("0")) + result.remainder == Decimal(amount)
    assert result.remainder >= 0
    for item in result.items:
        assert Decimal("0") < item.amount_paid <= balances[item.fee_head_id]


def test_same_input_gives_same_split() -> None:
    dues = [
        OutstandingDue(fee_head_id=TUITION, balance=Decimal("60")),
        OutstandingDue(fee_head_id=TRANSPORT, balance=Decimal("60")),
    ]

    assert allocate(Decimal("90"), dues) == allocate(Decimal("90"), dues)


@pytest.mark.parametrize("amount", ["0", "-10"])
def test_non_positive_amount_is_rejected(amount: str) -> None:
    with pytest.raises(InvalidInputError):
        allocate(Decimal(amount), [OutstandingDue(fee_head_id=TUITION, balance=Decimal("10"))])
