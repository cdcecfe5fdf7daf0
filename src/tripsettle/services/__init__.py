from tripsettle.services.breakdown import calculate_transfer_breakdown
from tripsettle.services.itemized import ItemizedCalculator, participant_amounts
from tripsettle.services.settlement import (
    apply_settled_transfers,
    calculate_minimal_transfers,
    calculate_pairwise_net_transfers,
    calculate_person_summaries,
    settle_by_currency,
    validate_balances,
)
from tripsettle.services.split import calculate_expense_shares
from tripsettle.services.validation import percentage_warnings, validate_settlement

__all__ = [
    "ItemizedCalculator",
    "apply_settled_transfers",
    "calculate_expense_shares",
    "calculate_minimal_transfers",
    "calculate_pairwise_net_transfers",
    "calculate_person_summaries",
    "calculate_transfer_breakdown",
    "participant_amounts",
    "percentage_warnings",
    "settle_by_currency",
    "validate_balances",
    "validate_settlement",
]
