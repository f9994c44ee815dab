import math
from typing import Any

from profitplan.buckets import total_percentage
from profitplan.domain import Allocation, Bucket
from profitplan.functional import Either, Left, Right


def parse_profit(value: Any) -> float:
    """Turn user input into a profit figure.

    Accepts numbers or text such as ``"$5,000.00"``. Missing, unparsable,
    non-finite and negative input all count as 0.
    """
    if value is None:
        return 0.0
    if isinstance(value, str):
        value = value.strip().lstrip("$").replace(",", "")
    try:
        profit = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(profit) or profit < 0:
        return 0.0
    return profit


def allocate(profit_amount: Any, buckets: tuple[Bucket, ...]) -> tuple[Allocation, ...]:
    profit = parse_profit(profit_amount)
    return tuple(
        Allocation(
            bucket_name=b.name,
            percentage=b.percentage,
            amount=profit * b.percentage / 100,
            account=b.account,
        )
        for b in buckets
    )


def total_allocated(allocations: tuple[Allocation, ...]) -> float:
    return sum(a.amount for a in allocations)


def check_allocation_gate(
    buckets: tuple[Bucket, ...], profit_text: Any
) -> Either[dict, float]:
    if profit_text is None or str(profit_text).strip() == "":
        return Left({
            "error": "profit_missing",
            "message": "Enter a profit amount to allocate",
        })

    total = total_percentage(buckets)
    if total != 100:
        return Left({
            "error": "percentage_total",
            "message": f"Total percentage is {total:.1f}% - should be 100%",
            "total": total,
        })

    return Right(parse_profit(profit_text))
