import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

from timetally.config import DEFAULT_SERVICE_TYPE, ENTRY_ID_PREFIX, TimerPhase
from timetally.helpers import TimeLike, to_epoch_ms


class InvalidTimeRangeError(ValueError):
    """Raised when an entry's end time is not after its start time."""

    def __init__(self, start_time: int, end_time: int) -> None:
        super().__init__(
            f"End time must be after start time (start={start_time}, end={end_time})"
        )
        self.start_time = start_time
        self.end_time = end_time


def new_entry_id() -> str:
    return f"{ENTRY_ID_PREFIX}{uuid.uuid4().hex}"


def validate_time_range(start_time: int, end_time: int) -> None:
    """Reject ranges where ``end_time <= start_time``."""
    if end_time <= start_time:
        raise InvalidTimeRangeError(start_time, end_time)


def validate_hourly_rate(hourly_rate: Optional[float]) -> None:
    if hourly_rate is not None and hourly_rate < 0:
        raise ValueError(f"Hourly rate must be non-negative, got {hourly_rate}")


@dataclass(frozen=True)
class TimeEntry:
    """One tracked work session for a client.

    All instants are epoch milliseconds. The entry is immutable: stopping a
    timer or amending a logged entry produces a corrected copy.
    """
    start_time: int
    client_id: str
    client_name: str
    created_at: int
    id: str = field(default_factory=new_entry_id)
    end_time: Optional[int] = None
    service_type: str = DEFAULT_SERVICE_TYPE
    service_line_id: Optional[str] = None
    notes: str = ""
    hourly_rate: Optional[float] = None
    billable: bool = True

    @property
    def is_running(self) -> bool:
        """Check if this entry is still running."""
        return self.end_time is None

    @property
    def duration_ms(self) -> Optional[int]:
        """Duration in milliseconds, or None while running."""
        if self.end_time is None:
            return None
        return self.end_time - self.start_time

    def completed_at(self, end_time: int) -> "TimeEntry":
        """Return a completed copy ending at ``end_time`` (clamped to start)."""
        return replace(self, end_time=max(end_time, self.start_time))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON record layout used by the key-value store."""
        d: Dict[str, Any] = {
            "id": self.id,
            "startTime": self.start_time,
            "clientId": self.client_id,
            "clientName": self.client_name,
            "serviceType": self.service_type,
            "notes": self.notes,
            "billable": self.billable,
            "createdAt": self.created_at,
        }
        if self.end_time is not None:
            d["endTime"] = self.end_time
        if self.service_line_id is not None:
            d["serviceLineId"] = self.service_line_id
        if self.hourly_rate is not None:
            d["hourlyRate"] = self.hourly_rate
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TimeEntry":
        """Create TimeEntry from a stored JSON record."""
        start = int(d["startTime"])
        end = d.get("endTime")
        rate = d.get("hourlyRate")
        return cls(
            id=str(d["id"]),
            start_time=start,
            end_time=int(end) if end is not None else None,
            client_id=str(d["clientId"]),
            client_name=d.get("clientName", ""),
            service_type=d.get("serviceType") or DEFAULT_SERVICE_TYPE,
            service_line_id=d.get("serviceLineId"),
            notes=d.get("notes", ""),
            hourly_rate=float(rate) if rate is not None else None,
            billable=bool(d.get("billable", False)),
            created_at=int(d.get("createdAt", start)),
        )


@dataclass
class TimeEntryFormData:
    """Fields the user fills in before starting a timer."""
    client_id: str
    client_name: str
    service_type: str = ""
    service_line_id: Optional[str] = None
    notes: Optional[str] = ""
    hourly_rate: Optional[float] = None
    billable: bool = True

    def build_entry(self, start_time: int, created_at: int, end_time: Optional[int] = None) -> TimeEntry:
        validate_hourly_rate(self.hourly_rate)
        return TimeEntry(
            start_time=start_time,
            end_time=end_time,
            client_id=self.client_id,
            client_name=self.client_name,
            service_type=self.service_type or DEFAULT_SERVICE_TYPE,
            service_line_id=self.service_line_id or None,
            notes=(self.notes or "").strip(),
            hourly_rate=self.hourly_rate,
            billable=self.billable,
            created_at=created_at,
        )


@dataclass
class ManualTimeEntryData(TimeEntryFormData):
    """Form data for a backdated entry logged without the timer.

    ``start_time`` and ``end_time`` accept datetimes or epoch milliseconds.
    """
    start_time: Optional[TimeLike] = None
    end_time: Optional[TimeLike] = None

    def time_range(self) -> Tuple[int, int]:
        if self.start_time is None or self.end_time is None:
            raise ValueError("Manual entries need both start_time and end_time")
        return to_epoch_ms(self.start_time), to_epoch_ms(self.end_time)


@dataclass
class TrackerState:
    """Observable tracker state shared by the timer and entry log services."""
    phase: TimerPhase = TimerPhase.IDLE
    elapsed_ms: int = 0
    current_entry: Optional[TimeEntry] = None
    completed_entries: List[TimeEntry] = field(default_factory=list)
    log_loaded: bool = False
    loading: bool = True
    error: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self.phase is TimerPhase.RUNNING

    @property
    def is_paused(self) -> bool:
        return self.phase is TimerPhase.PAUSED

    def get_entry_by_id(self, entry_id: str) -> Optional[TimeEntry]:
        for entry in self.completed_entries:
            if entry.id == entry_id:
                return entry
        return None
