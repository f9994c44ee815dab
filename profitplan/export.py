from dataclasses import dataclass
from datetime import date
from typing import Optional

import pandas as pd

from profitplan.allocation import parse_profit, total_allocated
from profitplan.domain import Allocation, OPERATING_ACCOUNT
from profitplan.errors import ExportPreconditionFailed

DEFAULT_MEMO = "Profit allocation transfer"
JOURNAL_COLUMNS = ["*Date", "*Account", "Debit", "Credit", "*Description", "Name"]
SEPARATOR = "-" * 40
INSTRUCTIONS = (
    "Import the CSV file into your accounting software",
    "Review the entries for accuracy",
    "Post the journal entry",
    "Make the actual bank transfers",
    "Match the transfers in your bank feed",
)


@dataclass(frozen=True)
class ExportFile:
    filename: str
    mime: str
    content: str


def _iso_day(day: Optional[date]) -> str:
    return (day or date.today()).isoformat()


def _money(value: float) -> str:
    return f"{value:.2f}"


def _require_allocations(allocations: tuple[Allocation, ...]) -> None:
    if not allocations:
        raise ExportPreconditionFailed()


def journal_memo(notes: Optional[str], default_memo: str = DEFAULT_MEMO) -> str:
    return notes if notes and notes.strip() else default_memo


def journal_entry_csv(
    allocations: tuple[Allocation, ...],
    notes: Optional[str] = None,
    day: Optional[date] = None,
    default_memo: str = DEFAULT_MEMO,
) -> str:
    """Render the allocation as a journal entry CSV.

    One credit row against the operating account for the full allocated
    total, then a debit row for every allocation with a positive amount.

    Quoting is minimal: a Description is wrapped in quotes only when it holds
    a comma, quote or newline, and embedded quotes are doubled. Importers that
    read RFC 4180 CSV see the same values either way.
    """
    _require_allocations(allocations)
    today = _iso_day(day)
    memo = journal_memo(notes, default_memo)

    rows = [[today, OPERATING_ACCOUNT, "", _money(total_allocated(allocations)), memo, ""]]
    for a in allocations:
        if a.amount > 0:
            rows.append([today, a.account, _money(a.amount), "", f"{memo} - {a.bucket_name}", ""])

    df = pd.DataFrame(rows, columns=JOURNAL_COLUMNS, dtype=str)
    return df.to_csv(index=False, lineterminator="\n")


def text_report(
    allocations: tuple[Allocation, ...],
    profit_amount,
    user: str,
    notes: Optional[str] = None,
    day: Optional[date] = None,
) -> str:
    _require_allocations(allocations)
    lines = [
        "Profit Allocation Report",
        f"Date: {_iso_day(day)}",
        f"User: {user}",
        "",
        f"Total Profit: ${_money(parse_profit(profit_amount))}",
        "",
        "Allocations:",
        SEPARATOR,
    ]
    for a in allocations:
        lines.append(f"{a.bucket_name.ljust(25)} {a.percentage:.1f}%  ${_money(a.amount).rjust(12)}")
    lines += [
        SEPARATOR,
        f"Total Allocated: ${_money(total_allocated(allocations))}",
        "",
    ]
    if notes:
        lines.append(f"Notes: {notes}")
    lines += ["", "Journal Entry Instructions:"]
    lines += [f"{n}. {step}" for n, step in enumerate(INSTRUCTIONS, start=1)]
    return "\n".join(lines) + "\n"


def journal_file(allocations, notes=None, day=None, default_memo=DEFAULT_MEMO) -> ExportFile:
    content = journal_entry_csv(allocations, notes, day, default_memo)
    return ExportFile(f"profit-allocation-{_iso_day(day)}.csv", "text/csv", content)


def report_file(allocations, profit_amount, user, notes=None, day=None) -> ExportFile:
    content = text_report(allocations, profit_amount, user, notes, day)
    return ExportFile(f"profit-allocation-report-{_iso_day(day)}.txt", "text/plain", content)
