from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Mapping, Optional, Union

from tripsettle.config import get_settings
from tripsettle.errors import BillValidationError
from tripsettle.money import ONE, ZERO, RoundingMode, to_decimal


class AssignmentMode(str, Enum):
    EVEN = "even"
    CUSTOM = "custom"


class ExtraType(str, Enum):
    PERCENT = "percent"
    AMOUNT = "amount"


class PercentBase(str, Enum):
    PRE_TAX_ITEM_SUBTOTALS = "preTaxItemSubtotals"
    TAXABLE_ITEM_SUBTOTALS_ONLY = "taxableItemSubtotalsOnly"
    POST_DISCOUNT_ITEM_SUBTOTALS = "postDiscountItemSubtotals"
    POST_TAX_SUBTOTALS = "postTaxSubtotals"
    POST_FEES_SUBTOTALS = "postFeesSubtotals"


class AbsoluteSplitMode(str, Enum):
    PROPORTIONAL_TO_ITEMS_SUBTOTAL = "proportionalToItemsSubtotal"
    EVEN_ACROSS_ASSIGNED_PEOPLE = "evenAcrossAssignedPeople"


class RemainderDistributionMode(str, Enum):
    LARGEST_SHARE = "largestShare"
    SMALLEST_SHARE = "smallestShare"
    PAYER = "payer"
    FIRST_LISTED = "firstListed"


@dataclass(frozen=True, slots=True)
class ItemAssignment:
    mode: AssignmentMode
    users: tuple[str, ...]
    shares: Optional[Mapping[str, Decimal]] = None

    def __post_init__(self) -> None:
        if isinstance(self.users, (set, frozenset)):
            users = tuple(sorted(self.users))
        else:
            users = tuple(dict.fromkeys(self.users))
        object.__setattr__(self, "users", users)

        if self.mode == AssignmentMode.EVEN:
            if self.shares is not None:
                raise BillValidationError("Even assignment cannot carry custom shares")
            return

        if self.shares is None:
            raise BillValidationError("Custom assignment requires shares")
        shares = {user_id: to_decimal(share) for user_id, share in self.shares.items()}
        unknown = set(shares) - set(users)
        if unknown:
            raise BillValidationError(f"Shares given for users not in the assignment: {sorted(unknown)}")
        missing = [user_id for user_id in users if user_id not in shares]
        if missing:
            raise BillValidationError(f"Custom assignment is missing shares for: {missing}")
        if any(share <= ZERO for share in shares.values()):
            raise BillValidationError("All custom shares must be positive")
        object.__setattr__(self, "shares", {user_id: shares[user_id] for user_id in users})

    @classmethod
    def even(cls, *users: str) -> ItemAssignment:
        return cls(mode=AssignmentMode.EVEN, users=tuple(users))

    @classmethod
    def custom(cls, shares: Mapping[str, Decimal | int | str]) -> ItemAssignment:
        return cls(
            mode=AssignmentMode.CUSTOM,
            users=tuple(shares),
            shares={user_id: to_decimal(share) for user_id, share in shares.items()},
        )

    @property
    def is_assigned(self) -> bool:
        return bool(self.users)

    def normalized_shares(self) -> dict[str, Decimal]:
        """Fraction of the item per user; sums to 1 over the assigned users."""
        if not self.users:
            return {}
        if self.mode == AssignmentMode.EVEN:
            count = Decimal(len(self.users))
            return {user_id: ONE / count for user_id in self.users}
        assert self.shares is not None
        total = sum(self.shares.values(), ZERO)
        return {user_id: self.shares[user_id] / total for user_id in self.users}


@dataclass(frozen=True, slots=True)
class LineItem:
    id: str
    name: str
    quantity: Decimal
    unit_price: Decimal
    assignment: ItemAssignment
    taxable: bool = True
    service_chargeable: bool = True

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise BillValidationError("Item name cannot be empty")
        quantity = to_decimal(self.quantity)
        unit_price = to_decimal(self.unit_price)
        if quantity <= ZERO:
            raise BillValidationError(f"Quantity of '{self.name}' must be greater than 0")
        if unit_price < ZERO:
            raise BillValidationError(f"Unit price of '{self.name}' cannot be negative")
        object.__setattr__(self, "quantity", quantity)
        object.__setattr__(self, "unit_price", unit_price)

    @property
    def item_total(self) -> Decimal:
        return self.quantity * self.unit_price


def _check_extra(label: str, type_: ExtraType, value: Decimal) -> Decimal:
    if not isinstance(type_, ExtraType):
        raise BillValidationError(f"{label} type must be 'percent' or 'amount'")
    value = to_decimal(value)
    if value <= ZERO:
        raise BillValidationError(f"{label} value must be greater than 0")
    return value


@dataclass(frozen=True, slots=True)
class TaxExtra:
    type: ExtraType
    value: Decimal
    base: Optional[PercentBase] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", _check_extra("Tax", self.type, self.value))

    @classmethod
    def percent(cls, value: Decimal | str, base: Optional[PercentBase] = None) -> TaxExtra:
        return cls(type=ExtraType.PERCENT, value=to_decimal(value), base=base)

    @classmethod
    def amount(cls, value: Decimal | str) -> TaxExtra:
        return cls(type=ExtraType.AMOUNT, value=to_decimal(value))


@dataclass(frozen=True, slots=True)
class TipExtra:
    type: ExtraType
    value: Decimal
    base: Optional[PercentBase] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", _check_extra("Tip", self.type, self.value))

    @classmethod
    def percent(cls, value: Decimal | str, base: Optional[PercentBase] = None) -> TipExtra:
        return cls(type=ExtraType.PERCENT, value=to_decimal(value), base=base)

    @classmethod
    def amount(cls, value: Decimal | str) -> TipExtra:
        return cls(type=ExtraType.AMOUNT, value=to_decimal(value))


@dataclass(frozen=True, slots=True)
class FeeExtra:
    id: str
    name: str
    type: ExtraType
    value: Decimal
    base: Optional[PercentBase] = None

    def __post_init__(self) -> None:
        if not self.id.strip():
            raise BillValidationError("Fee id cannot be empty")
        if not self.name.strip():
            raise BillValidationError("Fee name cannot be empty")
        object.__setattr__(self, "value", _check_extra(f"Fee '{self.name}'", self.type, self.value))


@dataclass(frozen=True, slots=True)
class DiscountExtra:
    id: str
    name: str
    type: ExtraType
    value: Decimal
    base: Optional[PercentBase] = None

    def __post_init__(self) -> None:
        if not self.id.strip():
            raise BillValidationError("Discount id cannot be empty")
        if not self.name.strip():
            raise BillValidationError("Discount name cannot be empty")
        object.__setattr__(self, "value", _check_extra(f"Discount '{self.name}'", self.type, self.value))


Extra = Union[TaxExtra, TipExtra, FeeExtra, DiscountExtra]


@dataclass(frozen=True, slots=True)
class Extras:
    tax: Optional[TaxExtra] = None
    tip: Optional[TipExtra] = None
    fees: tuple[FeeExtra, ...] = ()
    discounts: tuple[DiscountExtra, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "fees", tuple(self.fees))
        object.__setattr__(self, "discounts", tuple(self.discounts))
        for label, entries in (("fee", self.fees), ("discount", self.discounts)):
            ids = [entry.id for entry in entries]
            if len(ids) != len(set(ids)):
                raise BillValidationError(f"Duplicate {label} ids: {ids}")

    @property
    def is_empty(self) -> bool:
        return self.tax is None and self.tip is None and not self.fees and not self.discounts


@dataclass(frozen=True, slots=True)
class RoundingConfig:
    precision: Decimal
    mode: RoundingMode = RoundingMode.ROUND_HALF_UP
    distribute_remainder_to: RemainderDistributionMode = RemainderDistributionMode.LARGEST_SHARE

    def __post_init__(self) -> None:
        precision = to_decimal(self.precision)
        if precision <= ZERO:
            raise BillValidationError("Precision must be positive")
        object.__setattr__(self, "precision", precision)

    @classmethod
    def default(cls) -> RoundingConfig:
        settings = get_settings()
        return cls(
            precision=settings.default_precision,
            mode=RoundingMode(settings.default_rounding_mode),
            distribute_remainder_to=RemainderDistributionMode(settings.default_remainder),
        )


@dataclass(frozen=True, slots=True)
class AllocationRule:
    rounding: RoundingConfig
    percent_base: PercentBase = PercentBase.PRE_TAX_ITEM_SUBTOTALS
    absolute_split: AbsoluteSplitMode = AbsoluteSplitMode.PROPORTIONAL_TO_ITEMS_SUBTOTAL

    @classmethod
    def default(cls) -> AllocationRule:
        return cls(rounding=RoundingConfig.default())
