import pytest

from profitplan.buckets import (
    add_bucket,
    coerce_percentage,
    default_buckets,
    delete_bucket,
    total_percentage,
    update_bucket,
)
from profitplan.domain import Bucket


def make_buckets():
    return (
        Bucket(1, "Bonus", 40, "Owner Draw", "pink"),
        Bucket(2, "Taxes", 60, "Tax Savings Account", "blue"),
    )


def test_default_buckets_sum_to_100():
    buckets = default_buckets()
    assert [b.name for b in buckets] == ["Your Bonus", "Taxes", "Savings", "Reinvestment"]
    assert total_percentage(buckets) == 100


def test_add_bucket_appends_placeholder():
    buckets = make_buckets()
    new_buckets = add_bucket(buckets)

    assert len(new_buckets) == 3
    assert len(buckets) == 2
    added = new_buckets[-1]
    assert added.name == "New Bucket"
    assert added.percentage == 0
    assert added.account == "Account Name"


def test_add_bucket_ids_are_distinct():
    buckets = ()
    for _ in range(5):
        buckets = add_bucket(buckets)
    ids = [b.id for b in buckets]
    assert len(set(ids)) == 5
    assert ids == sorted(ids)


def test_update_bucket_touches_only_target():
    buckets = make_buckets()
    new_buckets = update_bucket(buckets, 1, "name", "Owner Pay")

    assert new_buckets[0].name == "Owner Pay"
    assert new_buckets[1] == buckets[1]
    assert buckets[0].name == "Bonus"


def test_update_bucket_percentage_coerces_text():
    buckets = make_buckets()
    assert update_bucket(buckets, 2, "percentage", "12.5")[1].percentage == 12.5
    assert update_bucket(buckets, 2, "percentage", "abc")[1].percentage == 0


def test_update_bucket_unknown_id_is_noop():
    buckets = make_buckets()
    assert update_bucket(buckets, 99, "account", "Elsewhere") == buckets


def test_update_bucket_rejects_unknown_field():
    with pytest.raises(ValueError):
        update_bucket(make_buckets(), 1, "id", 5)


def test_delete_bucket_removes_exactly_one():
    buckets = make_buckets()
    new_buckets = delete_bucket(buckets, 1)
    assert [b.id for b in new_buckets] == [2]


def test_delete_last_bucket_allows_empty_set():
    buckets = delete_bucket(delete_bucket(make_buckets(), 1), 2)
    assert buckets == ()
    assert total_percentage(buckets) == 0


def test_coerce_percentage_rejects_non_finite():
    assert coerce_percentage("inf") == 0
    assert coerce_percentage("nan") == 0
    assert coerce_percentage(None) == 0
    assert coerce_percentage(" 7 ") == 7
