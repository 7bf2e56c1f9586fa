"""Programmatic API facade for the time tracker.

Bundles the timer, the entry log and the billing calculator behind the
surface a screen needs: actions, filters, totals, formatting, and the
reactive fields a view re-reads when an event fires.

Usage:
    from timetally.core import bootstrap
    from timetally.api import TimeTrackerAPI

    api = TimeTrackerAPI(await bootstrap())
    api.subscribe(AppEvent.TIMER_TICK, lambda ms: label.set(api.format_duration(ms)))
    await api.start_timer(TimeEntryFormData("client-7", "Ada Lovelace", hourly_rate=90))
    entry = await api.stop_timer()
"""
from datetime import datetime
from typing import Any, Callable, Iterable, List, Optional

from timetally.config import DateRangePreset
from timetally.core import ServiceContainer
from timetally.events import AppEvent, Subscription
from timetally.helpers import TimeLike
from timetally.models.entities import ManualTimeEntryData, TimeEntry, TimeEntryFormData
from timetally.services import billing
from timetally.services.billing import BillingSummary


class TimeTrackerAPI:
    """High-level facade over the tracker services.

    Each action persists, updates the shared state and emits its event.
    Storage failures show up in ``error`` instead of being raised.
    """

    def __init__(self, services: ServiceContainer) -> None:
        self._svc = services

    # Reactive fields

    @property
    def is_running(self) -> bool:
        return self._svc.state.is_running

    @property
    def is_paused(self) -> bool:
        return self._svc.state.is_paused

    @property
    def elapsed_time(self) -> int:
        return self._svc.state.elapsed_ms

    @property
    def current_entry(self) -> Optional[TimeEntry]:
        return self._svc.state.current_entry

    @property
    def completed_entries(self) -> List[TimeEntry]:
        return list(self._svc.state.completed_entries)

    @property
    def loading(self) -> bool:
        return self._svc.state.loading

    @property
    def error(self) -> Optional[str]:
        return self._svc.state.error

    def subscribe(self, event: AppEvent, callback: Callable[[Any], None]) -> Subscription:
        return self._svc.event_bus.subscribe(event, callback)

    # Timer actions

    async def start_timer(self, form: TimeEntryFormData) -> TimeEntry:
        return await self._svc.timer.start_timer(form)

    async def stop_timer(self) -> Optional[TimeEntry]:
        return await self._svc.timer.stop_timer()

    def pause_timer(self) -> None:
        self._svc.timer.pause_timer()

    def resume_timer(self) -> None:
        self._svc.timer.resume_timer()

    async def discard_timer(self) -> Optional[TimeEntry]:
        return await self._svc.timer.discard_timer()

    # Entry management

    async def add_manual_entry(self, data: ManualTimeEntryData) -> TimeEntry:
        return await self._svc.entry_log.add_manual_entry(data)

    async def delete_entry(self, entry_id: str) -> None:
        await self._svc.entry_log.delete_entry(entry_id)

    async def update_entry(self, entry_id: str, **updates: Any) -> Optional[TimeEntry]:
        return await self._svc.entry_log.update_entry(entry_id, **updates)

    def get_entries_by_client(self, client_id: str) -> List[TimeEntry]:
        return self._svc.entry_log.get_entries_by_client(client_id)

    def get_entries_by_date_range(self, start: TimeLike, end: TimeLike) -> List[TimeEntry]:
        return self._svc.entry_log.get_entries_by_date_range(start, end)

    def get_entries_for_period(
        self,
        period: DateRangePreset,
        client_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[TimeEntry]:
        return self._svc.entry_log.get_entries_for_period(period, client_id=client_id, now=now)

    async def reload(self) -> None:
        """Re-read the log from storage, clearing any previous error."""
        state = self._svc.state
        state.loading = True
        state.error = None
        try:
            await self._svc.entry_log.load()
        finally:
            state.loading = False

    async def clear_all_entries(self) -> None:
        await self._svc.entry_log.clear_all_entries()

    # Calculations and formatting

    @staticmethod
    def calculate_total_hours(entries: Iterable[TimeEntry]) -> float:
        return billing.calculate_total_hours(entries)

    @staticmethod
    def calculate_total_amount(entries: Iterable[TimeEntry]) -> float:
        return billing.calculate_total_amount(entries)

    @staticmethod
    def calculate_entry_cost(entry: TimeEntry) -> Optional[float]:
        return billing.calculate_entry_cost(entry)

    @staticmethod
    def summarize(entries: Iterable[TimeEntry]) -> BillingSummary:
        return billing.summarize(entries)

    @staticmethod
    def format_duration(milliseconds: int) -> str:
        return billing.format_duration(milliseconds)

    @staticmethod
    def format_hours(milliseconds: float) -> str:
        return billing.format_hours(milliseconds)

    @staticmethod
    def format_amount(amount: float) -> str:
        return billing.format_amount(amount)
