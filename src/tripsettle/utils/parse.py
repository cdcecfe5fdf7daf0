from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import TypeVar

from tripsettle.models.bill import RemainderDistributionMode
from tripsettle.money import RoundingMode

E = TypeVar("E", bound=Enum)


# Spellings seen in stored documents, keyed by normalized text
ROUNDING_ALIASES = {
    "roundhalfup": RoundingMode.ROUND_HALF_UP,
    "halfup": RoundingMode.ROUND_HALF_UP,
    "roundhalfeven": RoundingMode.ROUND_HALF_EVEN,
    "halfeven": RoundingMode.ROUND_HALF_EVEN,
    "banker": RoundingMode.ROUND_HALF_EVEN,
    "rounddown": RoundingMode.ROUND_DOWN,
    "floor": RoundingMode.ROUND_DOWN,
    "down": RoundingMode.ROUND_DOWN,
    "roundup": RoundingMode.ROUND_UP,
    "ceil": RoundingMode.ROUND_UP,
    "ceiling": RoundingMode.ROUND_UP,
    "up": RoundingMode.ROUND_UP,
}

REMAINDER_ALIASES = {
    "largestshare": RemainderDistributionMode.LARGEST_SHARE,
    "largest": RemainderDistributionMode.LARGEST_SHARE,
    "smallestshare": RemainderDistributionMode.SMALLEST_SHARE,
    "smallest": RemainderDistributionMode.SMALLEST_SHARE,
    "payer": RemainderDistributionMode.PAYER,
    "firstlisted": RemainderDistributionMode.FIRST_LISTED,
    "first": RemainderDistributionMode.FIRST_LISTED,
}

_AMOUNT_RE = re.compile(r"^[+-]?\d+(?:[.,]\d+)?$")


def _normalize(value: str) -> str:
    return re.sub(r"[\s_\-]", "", value).lower()


def parse_amount(value: str | int | Decimal) -> Decimal:
    """Parse a stored amount such as ``"12.50"``, ``"12,50"`` or ``1250``."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError("Invalid amount: bool")
    if isinstance(value, int):
        return Decimal(value)
    text = value.strip().replace(" ", "")
    if not _AMOUNT_RE.match(text):
        raise ValueError(f"Invalid amount: {value!r}")
    try:
        return Decimal(text.replace(",", "."))
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {value!r}") from exc


def parse_enum(enum_cls: type[E], value: str, aliases: dict[str, E] | None = None) -> E:
    try:
        return enum_cls(value)
    except ValueError:
        pass
    key = _normalize(value)
    if aliases and key in aliases:
        return aliases[key]
    for member in enum_cls:
        if _normalize(member.value) == key:
            return member
    raise ValueError(f"Unknown {enum_cls.__name__}: {value!r}")


def parse_rounding_mode(value: str) -> RoundingMode:
    return parse_enum(RoundingMode, value, ROUNDING_ALIASES)


def parse_remainder_mode(value: str) -> RemainderDistributionMode:
    return parse_enum(RemainderDistributionMode, value, REMAINDER_ALIASES)
