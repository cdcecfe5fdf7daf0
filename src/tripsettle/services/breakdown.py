from __future__ import annotations

from decimal import Decimal
from typing import Sequence

from tripsettle.models.expense import Expense
from tripsettle.models.settlement import ExpenseBreakdown, TransferBreakdown
from tripsettle.money import ZERO
from tripsettle.services.split import calculate_expense_shares


def direct_pairwise_debt(expense: Expense, from_user_id: str, to_user_id: str, from_owes: Decimal, to_owes: Decimal) -> Decimal:
    # third-party payers create no debt between the two
    if expense.payer_id == to_user_id:
        return from_owes
    if expense.payer_id == from_user_id:
        return -to_owes
    return ZERO


def calculate_transfer_breakdown(
    from_user_id: str,
    to_user_id: str,
    transfer_amount: Decimal,
    expenses: Sequence[Expense],
) -> TransferBreakdown:
    """Explain a transfer between two people expense by expense."""
    breakdowns: list[ExpenseBreakdown] = []
    for expense in expenses:
        shares = calculate_expense_shares(expense)
        from_owes = shares.get(from_user_id, ZERO)
        to_owes = shares.get(to_user_id, ZERO)
        breakdowns.append(
            ExpenseBreakdown(
                expense=expense,
                from_paid=expense.amount if expense.payer_id == from_user_id else ZERO,
                from_owes=from_owes,
                to_paid=expense.amount if expense.payer_id == to_user_id else ZERO,
                to_owes=to_owes,
                net_contribution=direct_pairwise_debt(expense, from_user_id, to_user_id, from_owes, to_owes),
            )
        )

    return TransferBreakdown(
        from_user_id=from_user_id,
        to_user_id=to_user_id,
        total_amount=transfer_amount,
        expense_breakdowns=tuple(breakdowns),
    )
