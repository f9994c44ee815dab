import math
import time
from dataclasses import replace
from typing import Any

from profitplan.domain import Bucket, DEFAULT_BUCKETS

EDITABLE_FIELDS = ("name", "percentage", "account", "color_tag")


def default_buckets() -> tuple[Bucket, ...]:
    return DEFAULT_BUCKETS


def coerce_percentage(value: Any) -> float:
    """Numeric coercion for percentage input; anything unusable becomes 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def next_bucket_id(buckets: tuple[Bucket, ...]) -> int:
    # epoch millis, bumped past existing ids so two adds in the same ms still differ
    now_ms = time.time_ns() // 1_000_000
    return max(now_ms, max((b.id for b in buckets), default=0) + 1)


def add_bucket(buckets: tuple[Bucket, ...]) -> tuple[Bucket, ...]:
    new_bucket = Bucket(
        id=next_bucket_id(buckets),
        name="New Bucket",
        percentage=0,
        account="Account Name",
        color_tag="gray",
    )
    return buckets + (new_bucket,)


def update_bucket(
    buckets: tuple[Bucket, ...], bucket_id: int, field: str, value: Any
) -> tuple[Bucket, ...]:
    if field not in EDITABLE_FIELDS:
        raise ValueError(f"Unknown bucket field: {field}")
    if field == "percentage":
        value = coerce_percentage(value)
    return tuple(
        replace(b, **{field: value}) if b.id == bucket_id else b
        for b in buckets
    )


def delete_bucket(buckets: tuple[Bucket, ...], bucket_id: int) -> tuple[Bucket, ...]:
    return tuple(filter(lambda b: b.id != bucket_id, buckets))


def total_percentage(buckets: tuple[Bucket, ...]) -> float:
    return sum(b.percentage for b in buckets)
