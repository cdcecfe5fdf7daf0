from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Mapping, Optional

from tripsettle.models.expense import Expense
from tripsettle.money import ZERO


@dataclass(frozen=True, slots=True)
class CategorySpending:
    category_id: str
    amount: Decimal


@dataclass(frozen=True, slots=True)
class PersonSummary:
    user_id: str
    total_paid_base: Decimal
    total_owed_base: Decimal
    net_base: Decimal
    category_breakdown: Optional[tuple[CategorySpending, ...]] = None

    @property
    def is_creditor(self) -> bool:
        return self.net_base > ZERO

    @property
    def is_debtor(self) -> bool:
        return self.net_base < ZERO


@dataclass(frozen=True, slots=True)
class Transfer:
    from_user_id: str
    to_user_id: str
    amount_base: Decimal
    currency: Optional[str] = None
    trip_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.amount_base <= ZERO:
            raise ValueError("transfer amount must be positive")
        if self.from_user_id == self.to_user_id:
            raise ValueError("transfer must be between two different people")


@dataclass(frozen=True, slots=True)
class SettlementResult:
    currency: str
    summaries: Mapping[str, PersonSummary]
    transfers: tuple[Transfer, ...]
    pairwise_transfers: tuple[Transfer, ...]


@dataclass(frozen=True, slots=True)
class ExpenseBreakdown:
    expense: Expense
    from_paid: Decimal
    from_owes: Decimal
    to_paid: Decimal
    to_owes: Decimal
    net_contribution: Decimal

    @property
    def explanation(self) -> str:
        if self.net_contribution > ZERO:
            return f"Contributes {self.net_contribution} to transfer"
        if self.net_contribution < ZERO:
            return f"Reduces transfer by {abs(self.net_contribution)}"
        return "No net effect on transfer"


@dataclass(frozen=True, slots=True)
class TransferBreakdown:
    from_user_id: str
    to_user_id: str
    total_amount: Decimal
    expense_breakdowns: tuple[ExpenseBreakdown, ...]

    @property
    def relevant_breakdowns(self) -> tuple[ExpenseBreakdown, ...]:
        return tuple(b for b in self.expense_breakdowns if b.net_contribution != ZERO)

    @property
    def total_positive_contributions(self) -> Decimal:
        return sum((b.net_contribution for b in self.expense_breakdowns if b.net_contribution > ZERO), ZERO)

    @property
    def total_negative_contributions(self) -> Decimal:
        return sum((-b.net_contribution for b in self.expense_breakdowns if b.net_contribution < ZERO), ZERO)

    @property
    def net_total(self) -> Decimal:
        return self.total_positive_contributions - self.total_negative_contributions


@dataclass(slots=True)
class ValidationResult:
    issues: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.issues

    def __str__(self) -> str:
        if self.is_valid:
            return "ValidationResult: VALID"
        lines = "\n".join(f"  - {issue}" for issue in self.issues)
        return f"ValidationResult: INVALID\n{lines}"
