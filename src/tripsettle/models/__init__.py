from tripsettle.models.bill import (
    AbsoluteSplitMode,
    AllocationRule,
    AssignmentMode,
    DiscountExtra,
    ExtraType,
    Extras,
    FeeExtra,
    ItemAssignment,
    LineItem,
    PercentBase,
    RemainderDistributionMode,
    RoundingConfig,
    RoundingMode,
    TaxExtra,
    TipExtra,
)
from tripsettle.models.breakdown import ItemContribution, ParticipantBreakdown
from tripsettle.models.expense import Expense, SplitType
from tripsettle.models.settlement import (
    CategorySpending,
    ExpenseBreakdown,
    PersonSummary,
    SettlementResult,
    Transfer,
    TransferBreakdown,
    ValidationResult,
)

__all__ = [
    "AbsoluteSplitMode",
    "AllocationRule",
    "AssignmentMode",
    "CategorySpending",
    "DiscountExtra",
    "Expense",
    "ExpenseBreakdown",
    "ExtraType",
    "Extras",
    "FeeExtra",
    "ItemAssignment",
    "ItemContribution",
    "LineItem",
    "ParticipantBreakdown",
    "PercentBase",
    "PersonSummary",
    "RemainderDistributionMode",
    "RoundingConfig",
    "RoundingMode",
    "SettlementResult",
    "SplitType",
    "TaxExtra",
    "TipExtra",
    "Transfer",
    "TransferBreakdown",
    "ValidationResult",
]
