from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Mapping

from tripsettle.money import ZERO


@dataclass(frozen=True, slots=True)
class ItemContribution:
    item_id: str
    item_name: str
    quantity: Decimal
    unit_price: Decimal
    assigned_share: Decimal
    amount: Decimal = ZERO


@dataclass(frozen=True, slots=True)
class ParticipantBreakdown:
    user_id: str
    items_subtotal: Decimal
    extras_allocated: Mapping[str, Decimal]
    rounded_adjustment: Decimal
    total: Decimal
    items: tuple[ItemContribution, ...] = field(default_factory=tuple)

    @property
    def extras_total(self) -> Decimal:
        return sum(self.extras_allocated.values(), ZERO)

    @property
    def raw_total(self) -> Decimal:
        return self.items_subtotal + self.extras_total
