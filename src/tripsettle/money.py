"""Decimal primitives shared by the calculators.

Every money value is a ``Decimal``. Intermediate amounts are carried at
``INTERNAL_QUANTUM`` and only rounded to the currency precision at the very
end, when per-participant totals are reconciled.
"""

from __future__ import annotations

from contextlib import contextmanager
from decimal import (
    ROUND_CEILING,
    ROUND_FLOOR,
    ROUND_HALF_EVEN,
    ROUND_HALF_UP,
    Context,
    Decimal,
    localcontext,
)
from enum import Enum
from typing import Iterable, Iterator, Mapping

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")
INTERNAL_QUANTUM = Decimal("1e-10")

_ENGINE_CONTEXT = Context(prec=40, rounding=ROUND_HALF_EVEN)


class RoundingMode(str, Enum):
    ROUND_HALF_UP = "roundHalfUp"
    ROUND_HALF_EVEN = "roundHalfEven"
    ROUND_DOWN = "roundDown"
    ROUND_UP = "roundUp"


_DECIMAL_ROUNDING = {
    RoundingMode.ROUND_HALF_UP: ROUND_HALF_UP,
    RoundingMode.ROUND_HALF_EVEN: ROUND_HALF_EVEN,
    RoundingMode.ROUND_DOWN: ROUND_FLOOR,
    RoundingMode.ROUND_UP: ROUND_CEILING,
}


@contextmanager
def engine_context() -> Iterator[Context]:
    with localcontext(_ENGINE_CONTEXT) as ctx:
        yield ctx


def to_decimal(value: Decimal | int | str) -> Decimal:
    if isinstance(value, bool):
        raise TypeError("bool is not a monetary value")
    if isinstance(value, float):
        raise TypeError("float values are not accepted for money, pass a str or Decimal")
    if isinstance(value, Decimal):
        result = value
    else:
        result = Decimal(value)
    if not result.is_finite():
        raise ValueError(f"non-finite amount: {value!r}")
    return result


def decimal_sum(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)


def quantize_internal(value: Decimal) -> Decimal:
    return value.quantize(INTERNAL_QUANTUM, rounding=ROUND_HALF_EVEN)


def round_to(value: Decimal, precision: Decimal, mode: RoundingMode) -> Decimal:
    """Round ``value`` to a multiple of ``precision`` (0.01, 1, 0.05, ...)."""
    if precision <= ZERO:
        raise ValueError("precision must be positive")
    units = (value / precision).to_integral_value(rounding=_DECIMAL_ROUNDING[mode])
    return units * precision


def to_units(value: Decimal, precision: Decimal) -> int:
    """Express a multiple of ``precision`` as an integer count of units."""
    units = value / precision
    integral = units.to_integral_value(rounding=ROUND_HALF_EVEN)
    if units != integral:
        raise ValueError(f"{value} is not a multiple of {precision}")
    return int(integral)


def allocate(total: Decimal, weights: Mapping[str, Decimal], quantum: Decimal) -> dict[str, Decimal]:
    """Split ``total`` in proportion to ``weights`` using largest remainder.

    Every part is a multiple of ``quantum`` and the parts sum exactly to
    ``total`` rounded to ``quantum``. Leftover units go to the largest
    fractional remainders, ties broken by key.
    """
    if not weights:
        raise ValueError("cannot allocate across zero participants")
    weight_sum = decimal_sum(weights.values())
    if weight_sum <= ZERO:
        raise ValueError("weights must sum to a positive value")
    if any(weight < ZERO for weight in weights.values()):
        raise ValueError("weights must not be negative")

    units = int((total / quantum).to_integral_value(rounding=ROUND_HALF_EVEN))

    parts: dict[str, int] = {}
    remainders: list[tuple[Decimal, str]] = []
    for key, weight in weights.items():
        exact = units * weight / weight_sum
        floor = int(exact.to_integral_value(rounding=ROUND_FLOOR))
        parts[key] = floor
        remainders.append((exact - floor, key))

    leftover = units - sum(parts.values())
    remainders.sort(key=lambda entry: (-entry[0], entry[1]))
    for _, key in remainders[:leftover]:
        parts[key] += 1

    return {key: count * quantum for key, count in parts.items()}


def allocate_evenly(total: Decimal, keys: Iterable[str], quantum: Decimal) -> dict[str, Decimal]:
    return allocate(total, {key: ONE for key in keys}, quantum)
