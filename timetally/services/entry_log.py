import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, List, Optional

from timetally.config import (
    DEFAULT_SERVICE_TYPE,
    LOAD_ERROR_MESSAGE,
    SAVE_ERROR_MESSAGE,
    WEEK_PRESET_DAYS,
    DateRangePreset,
)
from timetally.database import DatabaseError
from timetally.events import AppEvent, EventBus
from timetally.helpers import Clock, TimeLike, from_epoch_ms, now_ms, to_epoch_ms
from timetally.models.entities import (
    ManualTimeEntryData,
    TimeEntry,
    TrackerState,
    validate_hourly_rate,
    validate_time_range,
)
from timetally.services.time_entry_service import TimeEntryService, record_persistence_error

logger = logging.getLogger(__name__)

AMENDABLE_FIELDS = frozenset({
    "start_time",
    "end_time",
    "client_id",
    "client_name",
    "service_type",
    "service_line_id",
    "notes",
    "hourly_rate",
    "billable",
})


class EntryLogService:
    """Service for the log of completed time entries.

    Keeps ``state.completed_entries`` (most recent first) in step with the
    persisted log. Storage failures are recorded on ``state.error`` rather
    than raised; validation failures are raised before anything changes.
    """

    def __init__(
        self,
        state: TrackerState,
        time_entry_svc: TimeEntryService,
        event_bus: EventBus,
        clock: Clock = now_ms,
    ) -> None:
        self.state = state
        self._time_entry_svc = time_entry_svc
        self._event_bus = event_bus
        self._clock = clock

    async def load(self) -> bool:
        """Read the persisted log into memory.

        Entries logged while the store was unreadable are kept at the head.

        Returns:
            True if the log was read, False if the store failed.
        """
        try:
            persisted = await self._time_entry_svc.load_entries()
        except DatabaseError as e:
            record_persistence_error(self.state, self._event_bus, LOAD_ERROR_MESSAGE, e)
            return False
        self._merge_loaded(persisted)
        logger.info(f"Loaded {len(self.state.completed_entries)} time entries")
        self._event_bus.emit(AppEvent.ENTRIES_LOADED, self.state.completed_entries)
        return True

    def _merge_loaded(self, persisted: List[TimeEntry]) -> None:
        known = {e.id for e in persisted}
        unsaved = [e for e in self.state.completed_entries if e.id not in known]
        self.state.completed_entries = unsaved + persisted
        self.state.log_loaded = True

    async def _persist(self) -> bool:
        """Save the in-memory log; returns False if nothing was written.

        Until the persisted log has been read, saving would overwrite it
        with a partial list, so it is read first and merged.
        """
        if not self.state.log_loaded:
            try:
                persisted = await self._time_entry_svc.load_entries()
            except DatabaseError as e:
                record_persistence_error(self.state, self._event_bus, LOAD_ERROR_MESSAGE, e)
                return False
            self._merge_loaded(persisted)
        try:
            await self._time_entry_svc.save_entries(self.state.completed_entries)
        except DatabaseError as e:
            record_persistence_error(self.state, self._event_bus, SAVE_ERROR_MESSAGE, e)
            return False
        return True

    async def prepend(self, entry: TimeEntry) -> bool:
        """Put a completed entry at the head of the log and persist.

        Returns:
            True once the log including ``entry`` is in storage.
        """
        if entry.end_time is None:
            raise ValueError(f"Cannot log running entry {entry.id}")
        self.state.completed_entries = [entry] + self.state.completed_entries
        return await self._persist()

    async def add_manual_entry(self, data: ManualTimeEntryData) -> TimeEntry:
        """Log a backdated entry entered by hand.

        Raises:
            InvalidTimeRangeError: If the end time is not after the start time.
            ValueError: If the hourly rate is negative or a bound is missing.
        """
        start, end = data.time_range()
        validate_time_range(start, end)
        entry = data.build_entry(start_time=start, end_time=end, created_at=self._clock())
        await self.prepend(entry)
        logger.info(f"Manual entry added: {entry.id} for client {entry.client_id}")
        self._event_bus.emit(AppEvent.ENTRY_ADDED, entry)
        return entry

    async def delete_entry(self, entry_id: str) -> None:
        """Remove an entry by id. Unknown ids are ignored."""
        remaining = [e for e in self.state.completed_entries if e.id != entry_id]
        if len(remaining) == len(self.state.completed_entries):
            logger.debug(f"Delete ignored, no entry {entry_id}")
            return
        self.state.completed_entries = remaining
        await self._persist()
        logger.info(f"Entry deleted: {entry_id}")
        self._event_bus.emit(AppEvent.ENTRY_DELETED, entry_id)

    async def update_entry(self, entry_id: str, **updates: Any) -> Optional[TimeEntry]:
        """Replace an entry with a corrected copy carrying ``updates``.

        The id and creation time are kept. When ``start_time`` or
        ``end_time`` is given the resulting range is validated again.

        Returns:
            The corrected entry, or None if no entry has ``entry_id``.

        Raises:
            ValueError: For fields that cannot be amended or a negative rate.
            InvalidTimeRangeError: If the corrected range is empty or reversed.
        """
        unknown = set(updates) - AMENDABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        current = self.state.get_entry_by_id(entry_id)
        if current is None:
            logger.debug(f"Update ignored, no entry {entry_id}")
            return None

        for key in ("start_time", "end_time"):
            if key in updates:
                updates[key] = to_epoch_ms(updates[key])
        if "notes" in updates:
            updates["notes"] = (updates["notes"] or "").strip()
        if "service_type" in updates:
            updates["service_type"] = updates["service_type"] or DEFAULT_SERVICE_TYPE
        if "hourly_rate" in updates:
            validate_hourly_rate(updates["hourly_rate"])

        corrected = replace(current, **updates)
        if "start_time" in updates or "end_time" in updates:
            validate_time_range(corrected.start_time, corrected.end_time)

        self.state.completed_entries = [
            corrected if e.id == entry_id else e for e in self.state.completed_entries
        ]
        await self._persist()
        logger.info(f"Entry updated: {entry_id} ({', '.join(sorted(updates))})")
        self._event_bus.emit(AppEvent.ENTRY_UPDATED, corrected)
        return corrected

    def get_entries_by_client(self, client_id: str) -> List[TimeEntry]:
        return [e for e in self.state.completed_entries if e.client_id == client_id]

    def get_entries_by_date_range(self, start: TimeLike, end: TimeLike) -> List[TimeEntry]:
        """Entries whose start falls within [start, end], both ends inclusive."""
        start_ms = to_epoch_ms(start)
        end_ms = to_epoch_ms(end)
        return [e for e in self.state.completed_entries if start_ms <= e.start_time <= end_ms]

    def get_entries_for_period(
        self,
        period: DateRangePreset,
        client_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[TimeEntry]:
        """Entries for one of the list screen's period filters.

        TODAY starts at local midnight, WEEK covers the last seven days and
        MONTH starts on the first of the current month.
        """
        entries = self.state.completed_entries
        if client_id:
            entries = [e for e in entries if e.client_id == client_id]

        if now is None:
            now = from_epoch_ms(self._clock())
        if period is DateRangePreset.TODAY:
            since = now.replace(hour=0, minute=0, second=0, microsecond=0)
        elif period is DateRangePreset.WEEK:
            since = now - timedelta(days=WEEK_PRESET_DAYS)
        elif period is DateRangePreset.MONTH:
            since = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        else:
            return list(entries)

        since_ms = to_epoch_ms(since)
        return [e for e in entries if e.start_time >= since_ms]

    async def clear_all_entries(self) -> None:
        """Wipe the persisted log. The running timer record is left alone."""
        self.state.completed_entries = []
        try:
            await self._time_entry_svc.clear_entries()
        except DatabaseError as e:
            record_persistence_error(self.state, self._event_bus, SAVE_ERROR_MESSAGE, e)
            return
        self.state.log_loaded = True
        logger.info("All entries cleared")
        self._event_bus.emit(AppEvent.ENTRIES_CLEARED)
