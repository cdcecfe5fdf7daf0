from __future__ import annotations

from decimal import Decimal
from typing import Mapping

from tripsettle.errors import ExpenseValidationError
from tripsettle.models.expense import Expense, SplitType
from tripsettle.money import ZERO, allocate, decimal_sum, engine_context


def split_weighted(amount: Decimal, weights: Mapping[str, Decimal], precision: Decimal) -> dict[str, Decimal]:
    if amount < ZERO:
        raise ValueError("amount must be non-negative")
    if not weights:
        raise ValueError("consumers must not be empty")

    with engine_context():
        return allocate(amount, weights, precision)


def calculate_expense_shares(expense: Expense) -> dict[str, Decimal]:
    """What each participant owes for one expense; always sums to the expense amount."""
    if expense.split_type == SplitType.ITEMIZED:
        assert expense.participant_amounts is not None
        shares = dict(expense.participant_amounts)
        if decimal_sum(shares.values()) != expense.amount:
            raise ExpenseValidationError(
                f"Participant amounts of expense {expense.id} sum to "
                f"{decimal_sum(shares.values())}, expected {expense.amount}"
            )
        return shares

    return split_weighted(expense.amount, expense.participants, expense.precision)
