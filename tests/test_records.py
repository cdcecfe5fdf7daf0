from decimal import Decimal

import pytest
from pydantic import ValidationError

from tripsettle.models.expense import SplitType
from tripsettle.money import RoundingMode
from tripsettle.records import ExpenseRecord, RoundingRecord, amounts_to_record, breakdown_to_record
from tripsettle.services.split import calculate_expense_shares


def _itemized_doc(**overrides):
    doc = {
        "id": "e1",
        "tripId": "t1",
        "payerUserId": "a",
        "currency": "USD",
        "amount": "22.00",
        "splitType": "itemized",
        "createdAt": "2024-05-01T19:30:00Z",
        "items": [
            {
                "id": "i1",
                "name": "Pizza",
                "quantity": "1",
                "unitPrice": "20,00",
                "assignment": {"mode": "even", "users": ["a", "b"]},
            }
        ],
        "extras": {"tax": {"type": "percent", "value": 10}},
        "allocation": {"rounding": {"precision": "0.01", "mode": "banker", "distributeRemainderTo": "largest"}},
    }
    doc.update(overrides)
    return doc


def test_itemized_document_is_recomputed():
    record = ExpenseRecord.model_validate(_itemized_doc())
    expense = record.to_expense()

    assert expense.split_type == SplitType.ITEMIZED
    assert expense.participant_amounts == {"a": Decimal("11.00"), "b": Decimal("11.00")}
    assert set(expense.participants) == {"a", "b"}
    assert expense.participant_breakdown["a"].extras_allocated["tax"] == Decimal("1.00")
    assert calculate_expense_shares(expense) == {"a": Decimal("11.00"), "b": Decimal("11.00")}


def test_stored_participant_amounts_are_trusted():
    doc = _itemized_doc(participantAmounts={"a": "12.00", "b": "10.00"})
    expense = ExpenseRecord.model_validate(doc).to_expense()

    assert expense.participant_amounts == {"a": Decimal("12.00"), "b": Decimal("10.00")}
    assert expense.participant_breakdown is None


def test_legacy_numeric_amounts():
    doc = {
        "id": "e2",
        "tripId": "t1",
        "payerUserId": "a",
        "currency": "EUR",
        "amount": 12.5,
        "splitType": "equal",
        "participants": {"a": 1, "b": 1},
    }
    expense = ExpenseRecord.model_validate(doc).to_expense()

    assert expense.amount == Decimal("12.5")
    assert calculate_expense_shares(expense) == {"a": Decimal("6.25"), "b": Decimal("6.25")}


def test_bad_amount_is_rejected():
    with pytest.raises(ValidationError):
        ExpenseRecord.model_validate(_itemized_doc(amount="12.5.0"))


def test_rounding_aliases():
    record = RoundingRecord.model_validate({"mode": "round_half_even", "distributeRemainderTo": "first"})
    assert record.mode == RoundingMode.ROUND_HALF_EVEN
    assert record.to_model().distribute_remainder_to.value == "firstListed"


def test_breakdown_to_record():
    expense = ExpenseRecord.model_validate(_itemized_doc()).to_expense()

    doc = breakdown_to_record(expense.participant_breakdown["b"])

    assert doc["userId"] == "b"
    assert set(doc) == {"userId", "itemsSubtotal", "extrasAllocated", "roundedAdjustment", "total", "items"}
    assert Decimal(doc["total"]) == Decimal("11.00")
    assert doc["items"][0]["itemId"] == "i1"
    assert Decimal(doc["items"][0]["assignedShare"]) == Decimal("0.5")
    assert amounts_to_record({"a": Decimal("1.50")}) == {"a": "1.50"}


def test_stored_precision_is_used_for_recompute():
    doc = _itemized_doc(
        currency="JPY",
        amount="1000",
        items=[
            {
                "id": "i1",
                "name": "Yakitori",
                "quantity": "1",
                "unitPrice": "1000",
                "assignment": {"mode": "even", "users": ["a", "b", "c"]},
            }
        ],
        extras=None,
        allocation={"rounding": {"precision": "1"}},
    )

    expense = ExpenseRecord.model_validate(doc).to_expense()
    shares = calculate_expense_shares(expense)

    assert expense.precision == Decimal("1")
    assert sorted(shares.values()) == [Decimal("333"), Decimal("333"), Decimal("334")]
    assert shares["a"] == Decimal("334")


def test_explicit_precision_wins_over_stored():
    doc = _itemized_doc(allocation={"rounding": {"precision": "1"}}, amount="22.00")
    expense = ExpenseRecord.model_validate(doc).to_expense(precision=Decimal("0.01"))
    assert expense.precision == Decimal("0.01")
    assert expense.participant_amounts == {"a": Decimal("11.00"), "b": Decimal("11.00")}
