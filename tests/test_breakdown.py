from decimal import Decimal

from tripsettle.models.expense import Expense
from tripsettle.services.breakdown import calculate_transfer_breakdown
from tripsettle.services.settlement import calculate_pairwise_net_transfers


def test_transfer_breakdown_explains_pairwise_amount():
    expenses = [
        Expense.equal("e1", "t1", "alice", "USD", "30.00", ["alice", "bob", "carol"]),
        Expense.equal("e2", "t1", "bob", "USD", "12.00", ["alice", "bob"]),
        Expense.equal("e3", "t1", "carol", "USD", "9.00", ["alice", "bob", "carol"]),
    ]
    transfer = calculate_pairwise_net_transfers("t1", expenses, "USD")[0]
    assert (transfer.from_user_id, transfer.to_user_id) == ("bob", "alice")

    breakdown = calculate_transfer_breakdown("bob", "alice", transfer.amount_base, expenses)

    first, second, third = breakdown.expense_breakdowns
    assert first.to_paid == Decimal("30.00")
    assert first.from_owes == Decimal("10.00")
    assert first.net_contribution == Decimal("10.00")
    assert second.from_paid == Decimal("12.00")
    assert second.net_contribution == Decimal("-6.00")
    assert third.net_contribution == 0
    assert third.explanation == "No net effect on transfer"

    assert [b.expense.id for b in breakdown.relevant_breakdowns] == ["e1", "e2"]
    assert breakdown.total_positive_contributions == Decimal("10.00")
    assert breakdown.total_negative_contributions == Decimal("6.00")
    assert breakdown.net_total == breakdown.total_amount == Decimal("4.00")
