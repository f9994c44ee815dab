import pytest

from profitplan.domain import Bucket
from profitplan.functional import Left, Nothing, Right, Some, maybe


def test_maybe_map():
    maybe_value = Some(5)
    doubled = maybe_value.map(lambda x: x * 2)

    assert doubled.is_some()
    assert doubled.get_or_else(0) == 10

    nothing = Nothing()
    mapped_nothing = nothing.map(lambda x: x * 2)
    assert mapped_nothing.is_none()
    assert mapped_nothing.get_or_else(0) == 0


def test_left_keeps_gate_error():
    left_value = Left({"error": "percentage_total"})
    assert left_value.is_left()
    assert not left_value.is_right()
    assert left_value.get_or_else("fallback") == "fallback"
    assert left_value.get_error() == {"error": "percentage_total"}


def test_right_has_no_error():
    saved = Right((Bucket(1, "Profit", 5.0, "Savings", "pink"),))
    assert saved.is_right()
    assert saved.get_or_else(()) == saved.value
    with pytest.raises(ValueError):
        saved.get_error()


def test_equality():
    assert Some(1) == Some(1)
    assert Some(1) != Nothing()
    assert Nothing() == Nothing()
    assert Left("x") != Right("x")
    assert Right(5) == Right(5)


def test_maybe_from_lookup():
    rows = {"owner@example.com": {"buckets": []}}
    assert maybe(rows.get("owner@example.com")) == Some({"buckets": []})
    assert maybe(rows.get("missing@example.com")).is_none()
    assert maybe(0).is_some()
