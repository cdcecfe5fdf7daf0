from decimal import Decimal

from tripsettle.models.bill import DiscountExtra, ExtraType, Extras, FeeExtra, TaxExtra, TipExtra
from tripsettle.models.expense import Expense
from tripsettle.models.settlement import Transfer
from tripsettle.services.settlement import calculate_minimal_transfers, calculate_pairwise_net_transfers, calculate_person_summaries
from tripsettle.services.validation import percentage_warnings, validate_settlement


def _trip():
    people = ["alice", "bob", "charlie"]
    return [
        Expense.equal("e1", "t1", "alice", "USD", "90.00", people),
        Expense.equal("e2", "t1", "bob", "USD", "60.00", people),
        Expense.equal("e3", "t1", "alice", "USD", "40.00", people),
    ]


def test_computed_settlements_are_valid():
    summaries = calculate_person_summaries(_trip(), "USD")
    minimal = calculate_minimal_transfers(summaries)
    pairwise = calculate_pairwise_net_transfers("t1", _trip(), "USD")

    assert validate_settlement(summaries, minimal).is_valid
    assert validate_settlement(summaries, pairwise).is_valid


def test_broken_settlement_lists_issues():
    summaries = calculate_person_summaries(_trip(), "USD")
    transfers = [
        Transfer("charlie", "alice", Decimal("63.33")),
        Transfer("charlie", "alice", Decimal("1.00")),
        Transfer("dave", "alice", Decimal("2.00")),
    ]

    result = validate_settlement(summaries, transfers)

    assert not result.is_valid
    assert any("Duplicate" in issue for issue in result.issues)
    assert any("unknown payer: dave" in issue for issue in result.issues)
    assert any(issue.startswith("bob still has a balance") for issue in result.issues)
    assert "INVALID" in str(result)


def test_percentage_warnings():
    extras = Extras(
        tax=TaxExtra.percent("8.875"),
        tip=TipExtra.percent("40"),
        fees=(FeeExtra("f1", "Delivery", ExtraType.AMOUNT, Decimal("50")),),
        discounts=(DiscountExtra("d1", "Happy hour", ExtraType.PERCENT, Decimal("50")),),
    )

    warnings = percentage_warnings(extras, threshold=Decimal("25"))

    assert warnings == ["Tip of 40% is above 25%", "Discount 'Happy hour' of 50% is above 25%"]


def test_percentage_warnings_default_threshold(monkeypatch):
    monkeypatch.setenv("HIGH_PERCENT_THRESHOLD", "50")
    assert percentage_warnings(Extras(tip=TipExtra.percent("40"))) == []
