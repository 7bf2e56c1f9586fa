"""Tests for billing calculations and display formatting."""
from typing import Optional

import pytest

from timetally.config import MS_PER_HOUR
from timetally.models.entities import TimeEntry
from timetally.services.billing import (
    calculate_entry_cost,
    calculate_total_amount,
    calculate_total_hours,
    format_amount,
    format_duration,
    format_hours,
    summarize,
)

from conftest import START_MS


def make_entry(
    hours: Optional[float],
    hourly_rate: Optional[float] = None,
    billable: bool = True,
    client_id: str = "client-1",
) -> TimeEntry:
    end = START_MS + int(hours * MS_PER_HOUR) if hours is not None else None
    return TimeEntry(
        start_time=START_MS,
        end_time=end,
        client_id=client_id,
        client_name="Client",
        created_at=START_MS,
        hourly_rate=hourly_rate,
        billable=billable,
    )


# ===========================================================================
# formatting
# ===========================================================================

class TestFormatDuration:
    def test_hours_minutes_seconds(self):
        assert format_duration(5_425_000) == "01:30:25"

    def test_zero(self):
        assert format_duration(0) == "00:00:00"

    def test_drops_partial_seconds(self):
        assert format_duration(59_999) == "00:00:59"

    def test_hours_not_wrapped_at_a_day(self):
        assert format_duration(26 * MS_PER_HOUR + 61_000) == "26:01:01"

    def test_three_digit_hours(self):
        assert format_duration(123 * MS_PER_HOUR) == "123:00:00"


class TestFormatHours:
    @pytest.mark.parametrize("ms, expected", [
        (0, "0.00"),
        (5_400_000, "1.50"),
        (MS_PER_HOUR // 3, "0.33"),
        (30 * MS_PER_HOUR, "30.00"),
    ])
    def test_decimal_hours(self, ms, expected):
        assert format_hours(ms) == expected

    def test_format_amount(self):
        assert format_amount(40) == "$40.00"
        assert format_amount(12.345) == "$12.35"


# ===========================================================================
# per-entry cost
# ===========================================================================

class TestEntryCost:
    def test_rate_times_hours(self):
        assert calculate_entry_cost(make_entry(1.5, hourly_rate=80)) == pytest.approx(120.0)

    def test_no_rate_is_not_computable(self):
        assert calculate_entry_cost(make_entry(2)) is None

    def test_running_entry_is_not_computable(self):
        assert calculate_entry_cost(make_entry(None, hourly_rate=50)) is None

    def test_non_billable_entry_still_has_a_cost(self):
        assert calculate_entry_cost(make_entry(1, hourly_rate=50, billable=False)) == pytest.approx(50.0)


# ===========================================================================
# aggregates
# ===========================================================================

class TestTotals:
    def test_total_amount_skips_non_billable(self):
        entries = [
            make_entry(2, hourly_rate=20, billable=True),
            make_entry(1, hourly_rate=50, billable=False),
        ]
        total = calculate_total_amount(entries)
        assert total == pytest.approx(40.0)
        assert format_amount(total) == "$40.00"

    def test_total_amount_skips_rateless_and_running(self):
        entries = [
            make_entry(1, hourly_rate=30),
            make_entry(3),
            make_entry(None, hourly_rate=100),
        ]
        assert calculate_total_amount(entries) == pytest.approx(30.0)

    def test_total_amount_of_nothing_is_zero(self):
        assert calculate_total_amount([]) == 0

    def test_total_amount_is_not_rounded_per_entry(self):
        # 1 minute at $1/h is 0.01666..., rounding each would give 0.02 * 3
        entries = [make_entry(1 / 60, hourly_rate=1) for _ in range(3)]
        assert calculate_total_amount(entries) == pytest.approx(0.05)

    def test_total_hours_ignores_running_entry(self):
        entries = [make_entry(2), make_entry(0.5, billable=False), make_entry(None)]
        assert calculate_total_hours(entries) == pytest.approx(2.5)

    def test_totals_accept_generators(self):
        assert calculate_total_hours(make_entry(1) for _ in range(4)) == pytest.approx(4.0)

    def test_summary(self):
        summary = summarize([
            make_entry(2, hourly_rate=20),
            make_entry(1, hourly_rate=50, billable=False),
        ])
        assert summary.total_hours == pytest.approx(3.0)
        assert summary.billable_hours == pytest.approx(2.0)
        assert summary.total_amount == pytest.approx(40.0)
        assert summary.entry_count == 2
