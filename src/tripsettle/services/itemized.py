"""Itemized bill allocation.

Turns line items plus tax, tip, fees and discounts into one
``ParticipantBreakdown`` per person. Extras are evaluated in a fixed pipeline
(discounts, tax, fees, tip); each percentage extra reads the running subtotal
named by its base, and a base only becomes available once the stage that
produces it has run. All intermediate amounts are split with largest
remainder at ``INTERNAL_QUANTUM`` so nothing is lost before the final
rounding step.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Mapping, Optional, Sequence

from tripsettle.errors import BillValidationError, EmptyBillError, UnassignedItemError
from tripsettle.logging import get_logger
from tripsettle.models.bill import (
    AbsoluteSplitMode,
    AllocationRule,
    AssignmentMode,
    Extra,
    Extras,
    ExtraType,
    LineItem,
    PercentBase,
)
from tripsettle.models.breakdown import ItemContribution, ParticipantBreakdown
from tripsettle.money import (
    HUNDRED,
    INTERNAL_QUANTUM,
    ONE,
    ZERO,
    allocate,
    allocate_evenly,
    decimal_sum,
    engine_context,
    quantize_internal,
)
from tripsettle.services.rounding import round_amounts

TAX_KEY = "tax"
TIP_KEY = "tip"


def fee_key(fee_id: str) -> str:
    return f"fee_{fee_id}"


def discount_key(discount_id: str) -> str:
    return f"discount_{discount_id}"


def validate_items(items: Sequence[LineItem]) -> None:
    if not items:
        raise EmptyBillError()
    seen: set[str] = set()
    for item in items:
        if item.id in seen:
            raise BillValidationError(f"Duplicate item id: {item.id}")
        seen.add(item.id)
        if not item.assignment.is_assigned:
            raise UnassignedItemError(item.id, item.name)


def participant_amounts(breakdowns: Mapping[str, ParticipantBreakdown]) -> dict[str, Decimal]:
    return {user_id: breakdown.total for user_id, breakdown in breakdowns.items()}


class _ItemShares:
    def __init__(self) -> None:
        self.subtotals: dict[str, Decimal] = {}
        self.taxable_subtotals: dict[str, Decimal] = {}
        self.contributions: dict[str, list[ItemContribution]] = {}
        self.pre_tax_total = ZERO
        self.taxable_total = ZERO

    @property
    def participants(self) -> list[str]:
        return list(self.subtotals)

    def add_item(self, item: LineItem) -> None:
        item_total = quantize_internal(item.item_total)
        assignment = item.assignment
        if assignment.mode == AssignmentMode.CUSTOM:
            assert assignment.shares is not None
            weights = dict(assignment.shares)
        else:
            weights = {user_id: ONE for user_id in assignment.users}
        fractions = assignment.normalized_shares()
        parts = allocate(item_total, weights, INTERNAL_QUANTUM)

        self.pre_tax_total += item_total
        if item.taxable:
            self.taxable_total += item_total

        for user_id in assignment.users:
            amount = parts[user_id]
            self.subtotals[user_id] = self.subtotals.get(user_id, ZERO) + amount
            taxable_amount = amount if item.taxable else ZERO
            self.taxable_subtotals[user_id] = self.taxable_subtotals.get(user_id, ZERO) + taxable_amount
            self.contributions.setdefault(user_id, []).append(
                ItemContribution(
                    item_id=item.id,
                    item_name=item.name,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    assigned_share=fractions[user_id],
                    amount=amount,
                )
            )


class ItemizedCalculator:
    def calculate(
        self,
        items: Sequence[LineItem],
        extras: Extras,
        allocation: AllocationRule,
        currency_precision: Optional[Decimal] = None,
        payer_id: Optional[str] = None,
    ) -> dict[str, ParticipantBreakdown]:
        validate_items(items)
        log = get_logger(__name__)

        with engine_context():
            shares = _ItemShares()
            for item in items:
                shares.add_item(item)

            participants = shares.participants
            allocated: dict[str, dict[str, Decimal]] = {user_id: {} for user_id in participants}
            running: dict[PercentBase, Decimal] = {
                PercentBase.PRE_TAX_ITEM_SUBTOTALS: shares.pre_tax_total,
                PercentBase.TAXABLE_ITEM_SUBTOTALS_ONLY: shares.taxable_total,
            }

            discount_total = ZERO
            for discount in extras.discounts:
                amount = self._resolve_amount(f"Discount '{discount.name}'", discount, running, allocation)
                discount_total += amount
                for user_id, part in self._split(amount, discount, allocation, shares).items():
                    allocated[user_id][discount_key(discount.id)] = ZERO - part
            if discount_total > shares.pre_tax_total:
                raise BillValidationError(
                    f"Discounts ({discount_total}) exceed the item subtotal ({shares.pre_tax_total})"
                )
            running[PercentBase.POST_DISCOUNT_ITEM_SUBTOTALS] = shares.pre_tax_total - discount_total

            tax_total = ZERO
            if extras.tax is not None:
                tax_total = self._resolve_amount("Tax", extras.tax, running, allocation)
                for user_id, part in self._split(tax_total, extras.tax, allocation, shares).items():
                    allocated[user_id][TAX_KEY] = part
            running[PercentBase.POST_TAX_SUBTOTALS] = running[PercentBase.POST_DISCOUNT_ITEM_SUBTOTALS] + tax_total

            fee_total = ZERO
            for fee in extras.fees:
                amount = self._resolve_amount(f"Fee '{fee.name}'", fee, running, allocation)
                fee_total += amount
                for user_id, part in self._split(amount, fee, allocation, shares).items():
                    allocated[user_id][fee_key(fee.id)] = part
            running[PercentBase.POST_FEES_SUBTOTALS] = running[PercentBase.POST_TAX_SUBTOTALS] + fee_total

            if extras.tip is not None:
                tip_total = self._resolve_amount("Tip", extras.tip, running, allocation)
                for user_id, part in self._split(tip_total, extras.tip, allocation, shares).items():
                    allocated[user_id][TIP_KEY] = part

            raw_totals = {
                user_id: shares.subtotals[user_id] + decimal_sum(allocated[user_id].values())
                for user_id in participants
            }
            rounded = round_amounts(raw_totals, allocation.rounding, currency_precision, payer_id)

            breakdowns = {
                user_id: ParticipantBreakdown(
                    user_id=user_id,
                    items_subtotal=shares.subtotals[user_id],
                    extras_allocated=allocated[user_id],
                    rounded_adjustment=rounded[user_id] - raw_totals[user_id],
                    total=rounded[user_id],
                    items=tuple(shares.contributions[user_id]),
                )
                for user_id in participants
            }

        log.info(
            "itemized.calculated",
            items=len(items),
            participants=len(participants),
            total=str(decimal_sum(rounded.values())),
        )
        return breakdowns

    def grand_total(
        self,
        items: Sequence[LineItem],
        extras: Extras,
        allocation: AllocationRule,
        currency_precision: Optional[Decimal] = None,
        payer_id: Optional[str] = None,
    ) -> Decimal:
        breakdowns = self.calculate(items, extras, allocation, currency_precision, payer_id)
        return decimal_sum(participant_amounts(breakdowns).values())

    def _resolve_amount(
        self,
        label: str,
        extra: Extra,
        running: Mapping[PercentBase, Decimal],
        allocation: AllocationRule,
    ) -> Decimal:
        if extra.type == ExtraType.AMOUNT:
            return quantize_internal(extra.value)
        base = extra.base or allocation.percent_base
        if base not in running:
            raise BillValidationError(f"{label} cannot be computed on {base.value} at this stage of the bill")
        return quantize_internal(running[base] * extra.value / HUNDRED)

    def _split(
        self,
        amount: Decimal,
        extra: Extra,
        allocation: AllocationRule,
        shares: _ItemShares,
    ) -> dict[str, Decimal]:
        participants = shares.participants
        if allocation.absolute_split == AbsoluteSplitMode.EVEN_ACROSS_ASSIGNED_PEOPLE:
            return allocate_evenly(amount, participants, INTERNAL_QUANTUM)

        weights = shares.subtotals
        base = extra.base or allocation.percent_base
        if extra.type == ExtraType.PERCENT and base == PercentBase.TAXABLE_ITEM_SUBTOTALS_ONLY:
            weights = shares.taxable_subtotals
        if decimal_sum(weights.values()) == ZERO:
            return allocate_evenly(amount, participants, INTERNAL_QUANTUM)
        return allocate(amount, weights, INTERNAL_QUANTUM)
