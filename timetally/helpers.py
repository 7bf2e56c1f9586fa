"""Clock and time conversion helpers shared by the services."""
import time
from datetime import datetime
from typing import Callable, Union

Clock = Callable[[], int]
TimeLike = Union[datetime, int, float]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def to_epoch_ms(value: TimeLike) -> int:
    """Convert a datetime or numeric epoch-millisecond value to int ms.

    Naive datetimes are interpreted in local time, like the device clock.
    """
    if isinstance(value, datetime):
        return round(value.timestamp() * 1000)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Expected datetime or epoch milliseconds, got {type(value).__name__}")
    return int(value)


def from_epoch_ms(value: int) -> datetime:
    """Convert epoch milliseconds to a local naive datetime."""
    return datetime.fromtimestamp(value / 1000)
