"""Exceptions raised by the allocation and settlement engine."""

from __future__ import annotations


class TripSettleError(Exception):
    pass


class BillValidationError(TripSettleError, ValueError):
    """Bad bill input: items, assignments, extras or rounding config."""


class UnassignedItemError(BillValidationError):
    def __init__(self, item_id: str, item_name: str) -> None:
        super().__init__(f"Item '{item_name}' ({item_id}) is not assigned to anyone")
        self.item_id = item_id


class EmptyBillError(BillValidationError):
    def __init__(self) -> None:
        super().__init__("Itemized split requires at least one item")


class ExpenseValidationError(TripSettleError, ValueError):
    pass


class InvariantError(TripSettleError, AssertionError):
    """The engine produced a result that breaks one of its own guarantees."""


class ReconciliationError(InvariantError):
    pass


class SettlementInvariantError(InvariantError):
    pass
