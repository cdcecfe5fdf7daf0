"""Group settlement over a set of expenses, one currency at a time.

Two transfer views are produced and they answer different questions:

* ``calculate_pairwise_net_transfers`` keeps every pair's exact net debt, so
  a user can see why they owe a given person a given amount.
* ``calculate_minimal_transfers`` reduces the per-person net balances to as
  few payments as possible; this is what people actually pay.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Mapping, Optional, Sequence

from tripsettle.errors import ExpenseValidationError, SettlementInvariantError
from tripsettle.logging import get_logger
from tripsettle.models.expense import Expense
from tripsettle.models.settlement import CategorySpending, PersonSummary, SettlementResult, Transfer
from tripsettle.money import ZERO, decimal_sum
from tripsettle.services.split import calculate_expense_shares

UNCATEGORIZED = "uncategorized"
DEFAULT_PRECISION = Decimal("0.01")


def _select(expenses: Iterable[Expense], currency: str, trip_id: Optional[str] = None) -> list[Expense]:
    return [
        expense
        for expense in expenses
        if expense.currency == currency and (trip_id is None or expense.trip_id == trip_id)
    ]


def currency_precision(expenses: Sequence[Expense], currency: str) -> Decimal:
    precisions = {expense.precision for expense in expenses if expense.currency == currency}
    if len(precisions) > 1:
        raise ExpenseValidationError(f"Expenses in {currency} disagree on precision: {sorted(precisions)}")
    return precisions.pop() if precisions else DEFAULT_PRECISION


def calculate_person_summaries(
    expenses: Sequence[Expense],
    base_currency: str,
    currency_filter: Optional[str] = None,
    include_categories: bool = False,
) -> dict[str, PersonSummary]:
    log = get_logger(__name__)
    currency = currency_filter or base_currency
    selected = _select(expenses, currency)

    paid: dict[str, Decimal] = {}
    owed: dict[str, Decimal] = {}
    categories: dict[str, dict[str, Decimal]] = {}

    for expense in selected:
        paid[expense.payer_id] = paid.get(expense.payer_id, ZERO) + expense.amount
        owed.setdefault(expense.payer_id, ZERO)

        shares = calculate_expense_shares(expense)
        log.debug(
            "settlement.expense",
            expense_id=expense.id,
            payer_id=expense.payer_id,
            amount=str(expense.amount),
            split_type=expense.split_type.value,
        )
        for user_id, share in shares.items():
            owed[user_id] = owed.get(user_id, ZERO) + share
            paid.setdefault(user_id, ZERO)
            if include_categories:
                per_user = categories.setdefault(user_id, {})
                category_id = expense.category_id or UNCATEGORIZED
                per_user[category_id] = per_user.get(category_id, ZERO) + share

    summaries: dict[str, PersonSummary] = {}
    for user_id in paid:
        breakdown = None
        if include_categories:
            spent = categories.get(user_id, {})
            breakdown = tuple(
                CategorySpending(category_id=category_id, amount=amount)
                for category_id, amount in sorted(spent.items(), key=lambda entry: (-entry[1], entry[0]))
                if amount != ZERO
            )
        summaries[user_id] = PersonSummary(
            user_id=user_id,
            total_paid_base=paid[user_id],
            total_owed_base=owed[user_id],
            net_base=paid[user_id] - owed[user_id],
            category_breakdown=breakdown,
        )

    log.info(
        "settlement.summaries",
        currency=currency,
        expenses=len(selected),
        participants=len(summaries),
    )
    return summaries


def calculate_pairwise_net_transfers(
    trip_id: Optional[str],
    expenses: Sequence[Expense],
    currency_filter: str,
) -> list[Transfer]:
    log = get_logger(__name__)
    selected = _select(expenses, currency_filter, trip_id)

    # (debtor, creditor) -> amount, before netting the two directions
    debts: dict[tuple[str, str], Decimal] = {}
    pairs: dict[tuple[str, str], None] = {}

    for expense in selected:
        payer_id = expense.payer_id
        for user_id, share in calculate_expense_shares(expense).items():
            if user_id == payer_id or share == ZERO:
                continue
            debts[(user_id, payer_id)] = debts.get((user_id, payer_id), ZERO) + share
            pairs.setdefault((user_id, payer_id) if user_id < payer_id else (payer_id, user_id), None)

    transfers: list[Transfer] = []
    for user_a, user_b in pairs:
        net = debts.get((user_a, user_b), ZERO) - debts.get((user_b, user_a), ZERO)
        if net > ZERO:
            transfers.append(Transfer(user_a, user_b, net, currency=currency_filter, trip_id=trip_id))
        elif net < ZERO:
            transfers.append(Transfer(user_b, user_a, -net, currency=currency_filter, trip_id=trip_id))

    log.info("settlement.pairwise", currency=currency_filter, pairs=len(pairs), transfers=len(transfers))
    return transfers


def validate_balances(summaries: Mapping[str, PersonSummary], precision: Decimal = DEFAULT_PRECISION) -> bool:
    total = decimal_sum(summary.net_base for summary in summaries.values())
    return abs(total) < precision


def calculate_minimal_transfers(
    summaries: Mapping[str, PersonSummary],
    precision: Decimal = DEFAULT_PRECISION,
    currency: Optional[str] = None,
    trip_id: Optional[str] = None,
) -> list[Transfer]:
    if not validate_balances(summaries, precision):
        total = decimal_sum(summary.net_base for summary in summaries.values())
        raise SettlementInvariantError(f"Net balances sum to {total}, expected 0")

    balances = {user_id: summary.net_base for user_id, summary in summaries.items() if summary.net_base != ZERO}
    transfers: list[Transfer] = []

    while True:
        creditors = sorted(
            (user_id for user_id, balance in balances.items() if balance > ZERO),
            key=lambda user_id: (-balances[user_id], user_id),
        )
        debtors = sorted(
            (user_id for user_id, balance in balances.items() if balance < ZERO),
            key=lambda user_id: (balances[user_id], user_id),
        )
        if not creditors or not debtors:
            break

        cred_id, debt_id = creditors[0], debtors[0]
        transfer_amount = min(balances[cred_id], -balances[debt_id])
        transfers.append(Transfer(debt_id, cred_id, transfer_amount, currency=currency, trip_id=trip_id))

        balances[cred_id] -= transfer_amount
        balances[debt_id] += transfer_amount

    get_logger(__name__).info("settlement.minimal", currency=currency, transfers=len(transfers))
    return transfers


def _shift(summary: PersonSummary, delta: Decimal) -> PersonSummary:
    return PersonSummary(
        user_id=summary.user_id,
        total_paid_base=summary.total_paid_base,
        total_owed_base=summary.total_owed_base,
        net_base=summary.net_base + delta,
        category_breakdown=summary.category_breakdown,
    )


def apply_settled_transfers(
    summaries: Mapping[str, PersonSummary],
    settled: Iterable[Transfer],
) -> dict[str, PersonSummary]:
    """Net balances after payments that have already been made.

    Someone who appears only in a settled transfer gets a zero summary first,
    so both sides of every transfer are always applied.
    """
    adjusted = dict(summaries)
    for transfer in settled:
        for user_id in (transfer.from_user_id, transfer.to_user_id):
            if user_id not in adjusted:
                adjusted[user_id] = PersonSummary(user_id, ZERO, ZERO, ZERO)
        adjusted[transfer.from_user_id] = _shift(adjusted[transfer.from_user_id], transfer.amount_base)
        adjusted[transfer.to_user_id] = _shift(adjusted[transfer.to_user_id], -transfer.amount_base)
    return adjusted


def settle_by_currency(
    expenses: Sequence[Expense],
    trip_id: Optional[str] = None,
    settled: Iterable[Transfer] = (),
) -> dict[str, SettlementResult]:
    log = get_logger(__name__)
    selected = [expense for expense in expenses if trip_id is None or expense.trip_id == trip_id]
    settled = list(settled)
    for transfer in settled:
        if transfer.currency is None:
            log.warning(
                "settlement.settled_without_currency",
                from_user_id=transfer.from_user_id,
                to_user_id=transfer.to_user_id,
                amount=str(transfer.amount_base),
            )
    results: dict[str, SettlementResult] = {}

    for currency in dict.fromkeys(expense.currency for expense in selected):
        precision = currency_precision(selected, currency)
        summaries = calculate_person_summaries(selected, base_currency=currency, include_categories=True)
        paid_back = [transfer for transfer in settled if transfer.currency == currency]
        summaries = apply_settled_transfers(summaries, paid_back)
        results[currency] = SettlementResult(
            currency=currency,
            summaries=summaries,
            transfers=tuple(calculate_minimal_transfers(summaries, precision, currency, trip_id)),
            pairwise_transfers=tuple(calculate_pairwise_net_transfers(trip_id, selected, currency)),
        )
    return results
