from decimal import Decimal

import pytest

from tripsettle.errors import BillValidationError
from tripsettle.models.bill import RemainderDistributionMode, RoundingConfig
from tripsettle.money import RoundingMode
from tripsettle.services.rounding import distribute_units, round_amounts

THIRDS = {
    "alice": Decimal("3.333333"),
    "bob": Decimal("3.333333"),
    "charlie": Decimal("3.333334"),
}


def _config(policy=RemainderDistributionMode.LARGEST_SHARE, mode=RoundingMode.ROUND_HALF_UP):
    return RoundingConfig(precision=Decimal("0.01"), mode=mode, distribute_remainder_to=policy)


def test_largest_share_gets_remainder():
    rounded = round_amounts(THIRDS, _config())
    assert rounded == {"alice": Decimal("3.33"), "bob": Decimal("3.33"), "charlie": Decimal("3.34")}


def test_smallest_share_ties_broken_by_id():
    rounded = round_amounts(THIRDS, _config(RemainderDistributionMode.SMALLEST_SHARE))
    assert rounded["alice"] == Decimal("3.34")
    assert sum(rounded.values()) == Decimal("10.00")


def test_first_listed():
    amounts = {"zoe": Decimal("3.333333"), "adam": Decimal("6.666667")}
    rounded = round_amounts(amounts, _config(RemainderDistributionMode.FIRST_LISTED, RoundingMode.ROUND_DOWN))
    assert rounded == {"zoe": Decimal("3.34"), "adam": Decimal("6.66")}


def test_payer_receives_whole_remainder():
    rounded = round_amounts(THIRDS, _config(RemainderDistributionMode.PAYER), payer_id="bob")
    assert rounded["bob"] == Decimal("3.34")


def test_payer_policy_requires_payer():
    with pytest.raises(BillValidationError):
        round_amounts(THIRDS, _config(RemainderDistributionMode.PAYER))
    with pytest.raises(BillValidationError):
        round_amounts(THIRDS, _config(RemainderDistributionMode.PAYER), payer_id="mallory")


def test_several_units_spread_one_at_a_time():
    amounts = {"a": Decimal("1.009"), "b": Decimal("1.009"), "c": Decimal("1.009")}
    rounded = round_amounts(amounts, _config(mode=RoundingMode.ROUND_DOWN))
    assert rounded == {"a": Decimal("1.01"), "b": Decimal("1.01"), "c": Decimal("1.00")}


def test_negative_residual_taken_from_largest():
    amounts = {"a": Decimal("0.005"), "b": Decimal("0.005")}
    rounded = round_amounts(amounts, _config())
    assert rounded == {"a": Decimal("0.00"), "b": Decimal("0.01")}


def test_precision_override():
    amounts = {"a": Decimal("333.3333"), "b": Decimal("666.6667")}
    rounded = round_amounts(amounts, _config(), precision=Decimal("1"))
    assert rounded == {"a": Decimal("333"), "b": Decimal("667")}


def test_distribute_units_cycles():
    assert distribute_units(["a", "b"], 3) == {"a": 2, "b": 1}
    assert distribute_units(["a", "b"], -1) == {"a": -1, "b": 0}
