"""Time and money formatting utilities for tracker displays.

Converts milliseconds to "01:30:25" clock strings or "1.50" decimal hours,
and amounts to "$40.00". Rounding happens here and nowhere else.
"""
from timetally.config import CURRENCY_SYMBOL, MS_PER_HOUR, MS_PER_SECOND


class TimeFormatter:
    """Unified time formatting utilities for the tracker."""

    @staticmethod
    def ms_to_hms(milliseconds: int) -> str:
        """Convert milliseconds to HH:MM:SS; hours are not wrapped at 24."""
        total_seconds = max(int(milliseconds), 0) // MS_PER_SECOND
        hours, remainder = divmod(total_seconds, 3600)
        minutes, secs = divmod(remainder, 60)
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"

    @staticmethod
    def ms_to_decimal_hours(milliseconds: float) -> str:
        """Convert milliseconds to decimal hours with two places, like '1.50'."""
        return f"{milliseconds / MS_PER_HOUR:.2f}"

    @staticmethod
    def amount_to_display(amount: float) -> str:
        """Format a dollar amount like '$40.00'."""
        return f"{CURRENCY_SYMBOL}{amount:.2f}"
