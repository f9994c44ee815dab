import pytest

from profitplan.allocation import (
    allocate,
    check_allocation_gate,
    parse_profit,
    total_allocated,
)
from profitplan.domain import Bucket


def make_bucket(id, name, pct, account="Acct"):
    return Bucket(id=id, name=name, percentage=pct, account=account)


def example_buckets():
    return (
        make_bucket(1, "Bonus", 40, "Owner Draw"),
        make_bucket(2, "Taxes", 25, "Tax Savings Account"),
        make_bucket(3, "Savings", 15, "Business Savings"),
        make_bucket(4, "Reinvestment", 20, "Operating Account"),
    )


def test_allocate_example_split():
    result = allocate(5000.00, example_buckets())
    assert [a.amount for a in result] == [2000.0, 1250.0, 750.0, 1000.0]
    assert [a.account for a in result] == [
        "Owner Draw", "Tax Savings Account", "Business Savings", "Operating Account"
    ]


@pytest.mark.parametrize("profit", [0, 0.01, 1, 333.33, 1234.56, 99999.99, 1e9])
def test_allocate_sums_to_profit(profit):
    buckets = (
        make_bucket(1, "A", 33.3),
        make_bucket(2, "B", 33.3),
        make_bucket(3, "C", 33.4),
    )
    assert total_allocated(allocate(profit, buckets)) == pytest.approx(profit)


def test_allocate_preserves_order():
    buckets = (make_bucket(9, "Z", 10), make_bucket(3, "A", 50), make_bucket(5, "M", 40))
    assert [a.bucket_name for a in allocate(100, buckets)] == ["Z", "A", "M"]


def test_allocate_does_not_round():
    result = allocate(100, (make_bucket(1, "Third", 100 / 3),))
    assert result[0].amount == 100 * (100 / 3) / 100
    assert result[0].amount != round(result[0].amount, 2)


def test_allocate_does_not_enforce_total():
    result = allocate(1000, (make_bucket(1, "A", 50), make_bucket(2, "B", 47)))
    assert total_allocated(result) == 970


def test_allocate_empty_buckets():
    assert allocate(5000, ()) == ()


def test_allocate_is_idempotent():
    buckets = example_buckets()
    assert allocate("5000", buckets) == allocate("5000", buckets)


@pytest.mark.parametrize("raw, expected", [
    ("5000", 5000.0),
    (" $5,000.50 ", 5000.5),
    ("", 0.0),
    (None, 0.0),
    ("abc", 0.0),
    ("-20", 0.0),
    ("inf", 0.0),
    (12, 12.0),
])
def test_parse_profit(raw, expected):
    assert parse_profit(raw) == expected


def test_gate_blocks_97_percent():
    buckets = (make_bucket(1, "A", 50), make_bucket(2, "B", 47))
    gate = check_allocation_gate(buckets, "1000")
    assert gate.is_left()
    assert gate.get_error()["error"] == "percentage_total"
    assert gate.get_error()["message"] == "Total percentage is 97.0% - should be 100%"


def test_gate_opens_once_corrected():
    buckets = (make_bucket(1, "A", 50), make_bucket(2, "B", 50))
    gate = check_allocation_gate(buckets, "1000")
    assert gate.is_right()
    assert gate.get_or_else(None) == 1000.0


def test_gate_requires_profit_text():
    gate = check_allocation_gate(example_buckets(), "   ")
    assert gate.is_left()
    assert gate.get_error()["error"] == "profit_missing"


def test_gate_is_strict_equality():
    buckets = (make_bucket(1, "A", 99.99),)
    assert check_allocation_gate(buckets, "10").is_left()
