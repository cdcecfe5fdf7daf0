from __future__ import annotations

from decimal import Decimal
from typing import Mapping, Optional, Sequence

from tripsettle.errors import BillValidationError, ReconciliationError
from tripsettle.logging import get_logger
from tripsettle.models.bill import RemainderDistributionMode, RoundingConfig
from tripsettle.money import decimal_sum, round_to, to_units


def remainder_order(
    raw_totals: Mapping[str, Decimal],
    policy: RemainderDistributionMode,
    payer_id: Optional[str] = None,
) -> list[str]:
    """Participants in the order rounding units are handed out."""
    if policy == RemainderDistributionMode.LARGEST_SHARE:
        return sorted(raw_totals, key=lambda user_id: (-raw_totals[user_id], user_id))
    if policy == RemainderDistributionMode.SMALLEST_SHARE:
        return sorted(raw_totals, key=lambda user_id: (raw_totals[user_id], user_id))
    if policy == RemainderDistributionMode.FIRST_LISTED:
        return list(raw_totals)
    if payer_id is None:
        raise BillValidationError("payer_id is required when the remainder goes to the payer")
    if payer_id not in raw_totals:
        raise BillValidationError(f"Payer {payer_id} is not a participant of this bill")
    return [payer_id]


def distribute_units(order: Sequence[str], units: int) -> dict[str, int]:
    counts = {user_id: 0 for user_id in order}
    step = 1 if units > 0 else -1
    idx = 0
    remaining = units
    while remaining != 0:
        counts[order[idx]] += step
        remaining -= step
        idx = (idx + 1) % len(order)
    return counts


def round_amounts(
    raw_totals: Mapping[str, Decimal],
    config: RoundingConfig,
    precision: Optional[Decimal] = None,
    payer_id: Optional[str] = None,
) -> dict[str, Decimal]:
    """Round every amount and hand out the residual so the sum matches the rounded grand total."""
    if not raw_totals:
        return {}
    log = get_logger(__name__)
    unit = precision if precision is not None else config.precision
    order = remainder_order(raw_totals, config.distribute_remainder_to, payer_id)

    grand_total = round_to(decimal_sum(raw_totals.values()), unit, config.mode)
    rounded = {user_id: round_to(value, unit, config.mode) for user_id, value in raw_totals.items()}
    residual_units = to_units(grand_total - decimal_sum(rounded.values()), unit)

    if residual_units:
        for user_id, count in distribute_units(order, residual_units).items():
            rounded[user_id] += count * unit
        log.debug(
            "rounding.residual",
            units=residual_units,
            policy=config.distribute_remainder_to.value,
            recipients=order[: abs(residual_units)],
        )

    if decimal_sum(rounded.values()) != grand_total:
        raise ReconciliationError(
            f"Rounded totals {decimal_sum(rounded.values())} do not reconcile to {grand_total}"
        )
    return rounded
