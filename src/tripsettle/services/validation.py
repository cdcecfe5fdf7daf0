from __future__ import annotations

from decimal import Decimal
from typing import Mapping, Optional, Sequence

from tripsettle.config import get_settings
from tripsettle.logging import get_logger
from tripsettle.models.bill import Extras, ExtraType
from tripsettle.models.settlement import PersonSummary, Transfer, ValidationResult
from tripsettle.money import decimal_sum


def percentage_warnings(extras: Extras, threshold: Optional[Decimal] = None) -> list[str]:
    """Percent extras that look suspiciously high. Never blocks a calculation."""
    limit = threshold if threshold is not None else get_settings().high_percent_threshold
    labelled = []
    if extras.tax is not None:
        labelled.append(("Tax", extras.tax))
    if extras.tip is not None:
        labelled.append(("Tip", extras.tip))
    labelled.extend((f"Fee '{fee.name}'", fee) for fee in extras.fees)
    labelled.extend((f"Discount '{discount.name}'", discount) for discount in extras.discounts)

    warnings = [
        f"{label} of {extra.value}% is above {limit}%"
        for label, extra in labelled
        if extra.type == ExtraType.PERCENT and extra.value > limit
    ]
    if warnings:
        get_logger(__name__).warning("extras.high_percentage", count=len(warnings))
    return warnings


def validate_settlement(
    summaries: Mapping[str, PersonSummary],
    transfers: Sequence[Transfer],
    precision: Decimal = Decimal("0.01"),
) -> ValidationResult:
    result = ValidationResult()

    total = decimal_sum(summary.net_base for summary in summaries.values())
    if abs(total) >= precision:
        result.issues.append(f"Conservation of money violated: balances sum to {total}")

    seen: set[tuple[str, str]] = set()
    for transfer in transfers:
        for role, user_id in (("payer", transfer.from_user_id), ("receiver", transfer.to_user_id)):
            if user_id not in summaries:
                result.issues.append(f"Transfer has unknown {role}: {user_id}")
        pair = (transfer.from_user_id, transfer.to_user_id)
        if pair in seen:
            result.issues.append(f"Duplicate transfer {transfer.from_user_id} -> {transfer.to_user_id}")
        seen.add(pair)

    after = {user_id: summary.net_base for user_id, summary in summaries.items()}
    for transfer in transfers:
        if transfer.from_user_id in after:
            after[transfer.from_user_id] += transfer.amount_base
        if transfer.to_user_id in after:
            after[transfer.to_user_id] -= transfer.amount_base
    for user_id, balance in after.items():
        if abs(balance) >= precision:
            result.issues.append(f"{user_id} still has a balance of {balance} after all transfers")

    return result
