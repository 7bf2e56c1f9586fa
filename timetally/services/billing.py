"""Billing calculations over time entries.

Pure functions: nothing here reads the clock or touches storage. Amounts
are unrounded floats; round only when formatting for display.
"""
from dataclasses import dataclass
from typing import Iterable, Optional

from timetally.config import MS_PER_HOUR
from timetally.formatters import TimeFormatter
from timetally.models.entities import TimeEntry


@dataclass
class BillingSummary:
    """Totals shown above the entry list."""
    total_hours: float
    total_amount: float
    billable_hours: float
    entry_count: int


def format_duration(milliseconds: int) -> str:
    return TimeFormatter.ms_to_hms(milliseconds)


def format_hours(milliseconds: float) -> str:
    return TimeFormatter.ms_to_decimal_hours(milliseconds)


def format_amount(amount: float) -> str:
    return TimeFormatter.amount_to_display(amount)


def entry_hours(entry: TimeEntry) -> float:
    """Hours covered by a completed entry; 0 while it is still running."""
    if entry.end_time is None:
        return 0.0
    return (entry.end_time - entry.start_time) / MS_PER_HOUR


def calculate_entry_cost(entry: TimeEntry) -> Optional[float]:
    """Cost of one entry, or None when it has no rate or is still running.

    The billable flag is not consulted: the entry list shows the cost of
    non-billable work too, it just never reaches the totals.
    """
    if entry.hourly_rate is None or entry.end_time is None:
        return None
    return entry_hours(entry) * entry.hourly_rate


def calculate_total_hours(entries: Iterable[TimeEntry]) -> float:
    return sum(entry_hours(e) for e in entries)


def calculate_total_amount(entries: Iterable[TimeEntry]) -> float:
    """Sum the cost of billable, rated, completed entries."""
    total = 0.0
    for entry in entries:
        if not entry.billable:
            continue
        cost = calculate_entry_cost(entry)
        if cost is not None:
            total += cost
    return total


def summarize(entries: Iterable[TimeEntry]) -> BillingSummary:
    entries = list(entries)
    return BillingSummary(
        total_hours=calculate_total_hours(entries),
        total_amount=calculate_total_amount(entries),
        billable_hours=calculate_total_hours(e for e in entries if e.billable),
        entry_count=len(entries),
    )
