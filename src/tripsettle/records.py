"""Stored expense documents <-> engine values.

The document store keeps camelCase keys and amounts as strings (older
documents may hold plain numbers). Nothing here touches storage; callers pass
already-loaded mappings in and write the returned dicts back unchanged.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Any, Mapping, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

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
    TaxExtra,
    TipExtra,
)
from tripsettle.models.breakdown import ParticipantBreakdown
from tripsettle.models.expense import Expense, SplitType
from tripsettle.money import RoundingMode
from tripsettle.services.itemized import ItemizedCalculator, participant_amounts
from tripsettle.utils.parse import parse_amount, parse_remainder_mode, parse_rounding_mode


def _coerce_amount(value: Any) -> Any:
    if isinstance(value, float):
        return Decimal(repr(value))
    if isinstance(value, (str, int, Decimal)):
        return parse_amount(value)
    return value


Amount = Annotated[Decimal, BeforeValidator(_coerce_amount)]


class _Record(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class AssignmentRecord(_Record):
    mode: AssignmentMode = AssignmentMode.EVEN
    users: list[str] = Field(default_factory=list)
    shares: Optional[dict[str, Amount]] = None

    def to_model(self) -> ItemAssignment:
        return ItemAssignment(mode=self.mode, users=tuple(self.users), shares=self.shares)


class LineItemRecord(_Record):
    id: str
    name: str
    quantity: Amount
    unit_price: Amount
    taxable: bool = True
    service_chargeable: bool = True
    assignment: AssignmentRecord

    def to_model(self) -> LineItem:
        return LineItem(
            id=self.id,
            name=self.name,
            quantity=self.quantity,
            unit_price=self.unit_price,
            assignment=self.assignment.to_model(),
            taxable=self.taxable,
            service_chargeable=self.service_chargeable,
        )


class ExtraRecord(_Record):
    type: ExtraType
    value: Amount
    base: Optional[PercentBase] = None


class NamedExtraRecord(ExtraRecord):
    id: str
    name: str


class ExtrasRecord(_Record):
    tax: Optional[ExtraRecord] = None
    tip: Optional[ExtraRecord] = None
    fees: list[NamedExtraRecord] = Field(default_factory=list)
    discounts: list[NamedExtraRecord] = Field(default_factory=list)

    def to_model(self) -> Extras:
        return Extras(
            tax=TaxExtra(self.tax.type, self.tax.value, self.tax.base) if self.tax else None,
            tip=TipExtra(self.tip.type, self.tip.value, self.tip.base) if self.tip else None,
            fees=tuple(FeeExtra(f.id, f.name, f.type, f.value, f.base) for f in self.fees),
            discounts=tuple(DiscountExtra(d.id, d.name, d.type, d.value, d.base) for d in self.discounts),
        )


class RoundingRecord(_Record):
    precision: Amount = Decimal("0.01")
    mode: RoundingMode = RoundingMode.ROUND_HALF_UP
    distribute_remainder_to: RemainderDistributionMode = RemainderDistributionMode.LARGEST_SHARE

    @field_validator("mode", mode="before")
    @classmethod
    def _parse_mode(cls, value: Any) -> Any:
        return parse_rounding_mode(value) if isinstance(value, str) else value

    @field_validator("distribute_remainder_to", mode="before")
    @classmethod
    def _parse_remainder(cls, value: Any) -> Any:
        return parse_remainder_mode(value) if isinstance(value, str) else value

    def to_model(self) -> RoundingConfig:
        return RoundingConfig(
            precision=self.precision,
            mode=self.mode,
            distribute_remainder_to=self.distribute_remainder_to,
        )


class AllocationRuleRecord(_Record):
    percent_base: PercentBase = PercentBase.PRE_TAX_ITEM_SUBTOTALS
    absolute_split: AbsoluteSplitMode = AbsoluteSplitMode.PROPORTIONAL_TO_ITEMS_SUBTOTAL
    rounding: RoundingRecord = Field(default_factory=RoundingRecord)

    def to_model(self) -> AllocationRule:
        return AllocationRule(
            rounding=self.rounding.to_model(),
            percent_base=self.percent_base,
            absolute_split=self.absolute_split,
        )


class ExpenseRecord(_Record):
    id: str
    trip_id: str
    payer_user_id: str
    currency: str
    amount: Amount
    split_type: SplitType
    participants: dict[str, Amount] = Field(default_factory=dict)
    category_id: Optional[str] = None
    description: Optional[str] = None
    items: Optional[list[LineItemRecord]] = None
    extras: Optional[ExtrasRecord] = None
    allocation: Optional[AllocationRuleRecord] = None
    participant_amounts: Optional[dict[str, Amount]] = None

    def to_expense(self, precision: Optional[Decimal] = None) -> Expense:
        """Build an engine ``Expense``; itemized records without stored amounts are recomputed.

        Without an explicit ``precision`` the stored rounding precision is used,
        falling back to the configured default.
        """
        allocation = self.allocation.to_model() if self.allocation else AllocationRule.default()
        unit = precision if precision is not None else allocation.rounding.precision
        amounts = self.participant_amounts
        breakdowns: Optional[dict[str, ParticipantBreakdown]] = None

        if self.split_type == SplitType.ITEMIZED and not amounts and self.items:
            breakdowns = ItemizedCalculator().calculate(
                items=[item.to_model() for item in self.items],
                extras=self.extras.to_model() if self.extras else Extras(),
                allocation=allocation,
                currency_precision=unit,
                payer_id=self.payer_user_id,
            )
            amounts = participant_amounts(breakdowns)

        return Expense(
            id=self.id,
            trip_id=self.trip_id,
            payer_id=self.payer_user_id,
            currency=self.currency,
            amount=self.amount,
            split_type=self.split_type,
            participants=self.participants or {user_id: Decimal(1) for user_id in amounts or {}},
            precision=unit,
            participant_amounts=amounts,
            participant_breakdown=breakdowns,
            category_id=self.category_id,
            description=self.description,
        )


def amounts_to_record(amounts: Mapping[str, Decimal]) -> dict[str, str]:
    return {user_id: str(amount) for user_id, amount in amounts.items()}


def breakdown_to_record(breakdown: ParticipantBreakdown) -> dict[str, Any]:
    return {
        "userId": breakdown.user_id,
        "itemsSubtotal": str(breakdown.items_subtotal),
        "extrasAllocated": amounts_to_record(breakdown.extras_allocated),
        "roundedAdjustment": str(breakdown.rounded_adjustment),
        "total": str(breakdown.total),
        "items": [
            {
                "itemId": item.item_id,
                "itemName": item.item_name,
                "quantity": str(item.quantity),
                "unitPrice": str(item.unit_price),
                "assignedShare": str(item.assigned_share),
            }
            for item in breakdown.items
        ],
    }
