from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Mapping, Optional

from tripsettle.errors import ExpenseValidationError
from tripsettle.models.breakdown import ParticipantBreakdown
from tripsettle.money import ONE, ZERO, to_decimal


class SplitType(str, Enum):
    EQUAL = "equal"
    WEIGHTED = "weighted"
    ITEMIZED = "itemized"


@dataclass(frozen=True, slots=True)
class Expense:
    id: str
    trip_id: str
    payer_id: str
    currency: str
    amount: Decimal
    split_type: SplitType
    participants: Mapping[str, Decimal]
    precision: Decimal = Decimal("0.01")
    participant_amounts: Optional[Mapping[str, Decimal]] = None
    participant_breakdown: Optional[Mapping[str, ParticipantBreakdown]] = None
    category_id: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.payer_id:
            raise ExpenseValidationError(f"Expense {self.id} has no payer")
        if not self.currency:
            raise ExpenseValidationError(f"Expense {self.id} has no currency")
        amount = to_decimal(self.amount)
        if amount <= ZERO:
            raise ExpenseValidationError(f"Expense {self.id} amount must be greater than 0")
        precision = to_decimal(self.precision)
        if precision <= ZERO:
            raise ExpenseValidationError(f"Expense {self.id} precision must be positive")
        if amount % precision != ZERO:
            raise ExpenseValidationError(f"Expense {self.id} amount {amount} is finer than the currency unit {precision}")
        weights = {user_id: to_decimal(weight) for user_id, weight in self.participants.items()}

        if self.split_type in (SplitType.EQUAL, SplitType.WEIGHTED):
            if not weights:
                raise ExpenseValidationError(f"Expense {self.id} needs at least one participant")
            if self.split_type == SplitType.EQUAL and any(weight != ONE for weight in weights.values()):
                raise ExpenseValidationError(f"Equal split on expense {self.id} requires all weights to be 1")
            if any(weight <= ZERO for weight in weights.values()):
                raise ExpenseValidationError(f"Weighted split on expense {self.id} requires positive weights")
        elif not self.participant_amounts:
            raise ExpenseValidationError(f"Itemized expense {self.id} has no participant amounts")

        object.__setattr__(self, "amount", amount)
        object.__setattr__(self, "precision", precision)
        object.__setattr__(self, "participants", weights)
        if self.participant_amounts is not None:
            object.__setattr__(
                self,
                "participant_amounts",
                {user_id: to_decimal(value) for user_id, value in self.participant_amounts.items()},
            )

    @classmethod
    def equal(
        cls,
        id: str,
        trip_id: str,
        payer_id: str,
        currency: str,
        amount: Decimal | str,
        participants: list[str] | tuple[str, ...],
        **kwargs,
    ) -> Expense:
        return cls(
            id=id,
            trip_id=trip_id,
            payer_id=payer_id,
            currency=currency,
            amount=to_decimal(amount),
            split_type=SplitType.EQUAL,
            participants={user_id: ONE for user_id in participants},
            **kwargs,
        )

    @classmethod
    def itemized(
        cls,
        id: str,
        trip_id: str,
        payer_id: str,
        currency: str,
        breakdowns: Mapping[str, ParticipantBreakdown],
        **kwargs,
    ) -> Expense:
        amounts = {user_id: breakdown.total for user_id, breakdown in breakdowns.items()}
        return cls(
            id=id,
            trip_id=trip_id,
            payer_id=payer_id,
            currency=currency,
            amount=sum(amounts.values(), ZERO),
            split_type=SplitType.ITEMIZED,
            participants={user_id: ONE for user_id in amounts},
            participant_amounts=amounts,
            participant_breakdown=dict(breakdowns),
            **kwargs,
        )
