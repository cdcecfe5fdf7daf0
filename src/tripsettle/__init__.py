"""Itemized bill allocation and group settlement."""

from tripsettle.errors import (
    BillValidationError,
    EmptyBillError,
    ExpenseValidationError,
    InvariantError,
    ReconciliationError,
    SettlementInvariantError,
    TripSettleError,
    UnassignedItemError,
)
from tripsettle.models import *  # noqa: F401,F403
from tripsettle.models import __all__ as _model_names
from tripsettle.services import *  # noqa: F401,F403
from tripsettle.services import __all__ as _service_names

__version__ = "0.1.0"

__all__ = [
    "BillValidationError",
    "EmptyBillError",
    "ExpenseValidationError",
    "InvariantError",
    "ReconciliationError",
    "SettlementInvariantError",
    "TripSettleError",
    "UnassignedItemError",
    *_model_names,
    *_service_names,
]
