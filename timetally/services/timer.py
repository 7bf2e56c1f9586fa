import asyncio
import logging
from dataclasses import replace
from typing import Callable, Coroutine, Optional

from timetally.config import (
    LOAD_ERROR_MESSAGE,
    SAVE_ACTIVE_ERROR_MESSAGE,
    TICK_INTERVAL_SECONDS,
    TimerPhase,
)
from timetally.database import DatabaseError
from timetally.events import AppEvent, EventBus
from timetally.helpers import Clock, now_ms
from timetally.models.entities import TimeEntry, TimeEntryFormData, TrackerState
from timetally.services.entry_log import EntryLogService
from timetally.services.time_entry_service import TimeEntryService, record_persistence_error

logger = logging.getLogger(__name__)

AsyncScheduler = Callable[[Coroutine], asyncio.Task]


class AlreadyRunningError(RuntimeError):
    """Raised when a timer is started while another one is active."""

    def __init__(self, entry: TimeEntry) -> None:
        super().__init__(
            f"A timer is already active for client {entry.client_id} (entry {entry.id})"
        )
        self.entry = entry


class TimerService:
    """Single-timer state machine: IDLE -> RUNNING <-> PAUSED -> IDLE.

    The service owns its sampler task: a loop that refreshes
    ``state.elapsed_ms`` every tick while RUNNING. The sampler is display
    only; a stopped entry's duration always comes from its start and end
    instants. Pausing freezes the counter but leaves ``start_time`` alone,
    so paused wall-clock time still counts toward the final duration.

    The running entry is written to storage before ``start_timer`` returns
    and read back by ``recover`` on the next launch.
    """

    def __init__(
        self,
        state: TrackerState,
        time_entry_svc: TimeEntryService,
        entry_log: EntryLogService,
        event_bus: EventBus,
        clock: Clock = now_ms,
        tick_interval: float = TICK_INTERVAL_SECONDS,
        async_scheduler: Optional[AsyncScheduler] = None,
    ) -> None:
        self.state = state
        self._time_entry_svc = time_entry_svc
        self._entry_log = entry_log
        self._event_bus = event_bus
        self._clock = clock
        self._tick_interval = tick_interval
        self._schedule_async = async_scheduler or asyncio.ensure_future
        self._sampler: Optional[asyncio.Task] = None
        # Serializes start/stop/discard so their storage writes never interleave
        self._transition_lock = asyncio.Lock()

    @property
    def sampling(self) -> bool:
        """True while the elapsed-time sampler task is alive."""
        return self._sampler is not None and not self._sampler.done()

    def _start_sampler(self) -> None:
        self._cancel_sampler()
        self._sampler = self._schedule_async(self._tick_loop())

    def _cancel_sampler(self) -> None:
        if self._sampler is not None and not self._sampler.done():
            self._sampler.cancel()
        self._sampler = None

    async def _tick_loop(self) -> None:
        """Refresh the elapsed counter until the timer leaves RUNNING."""
        try:
            while self.state.phase is TimerPhase.RUNNING and self.state.current_entry:
                await asyncio.sleep(self._tick_interval)
                entry = self.state.current_entry
                if self.state.phase is not TimerPhase.RUNNING or entry is None:
                    break
                self._refresh_elapsed(entry)
                self._event_bus.emit(AppEvent.TIMER_TICK, self.state.elapsed_ms)
        except asyncio.CancelledError:
            logger.debug("Timer sampler cancelled")
            raise

    def _refresh_elapsed(self, entry: TimeEntry) -> None:
        self.state.elapsed_ms = max(self._clock() - entry.start_time, 0)

    def _reset(self) -> None:
        self._cancel_sampler()
        self.state.phase = TimerPhase.IDLE
        self.state.current_entry = None
        self.state.elapsed_ms = 0

    async def _save_active(self, entry: Optional[TimeEntry]) -> None:
        try:
            await self._time_entry_svc.save_active_entry(entry)
        except DatabaseError as e:
            record_persistence_error(self.state, self._event_bus, SAVE_ACTIVE_ERROR_MESSAGE, e)

    async def start_timer(self, form: TimeEntryFormData) -> TimeEntry:
        """Start timing a new session for ``form``'s client.

        Raises:
            AlreadyRunningError: If a timer is running or paused.
            ValueError: If the hourly rate is negative.
        """
        async with self._transition_lock:
            if self.state.current_entry is not None:
                raise AlreadyRunningError(self.state.current_entry)

            now = self._clock()
            entry = form.build_entry(start_time=now, created_at=now)

            self.state.current_entry = entry
            self.state.phase = TimerPhase.RUNNING
            self.state.elapsed_ms = 0
            self._start_sampler()

            await self._save_active(entry)
        logger.info(f"Timer started: {entry.id} for client {entry.client_id}")
        self._event_bus.emit(AppEvent.TIMER_STARTED, entry)
        return entry

    async def stop_timer(self) -> Optional[TimeEntry]:
        """Complete the active entry and move it to the head of the log.

        Returns:
            The completed entry, or None if no timer was active.
        """
        async with self._transition_lock:
            entry = self.state.current_entry
            if entry is None:
                return None

            completed = entry.completed_at(self._clock())
            self._reset()

            # The active record is the only durable copy until the log write lands;
            # recover() drops it once the entry is logged
            if await self._entry_log.prepend(completed):
                await self._save_active(None)
            else:
                logger.warning(f"Log write failed, keeping active record for {completed.id}")

        logger.info(f"Timer stopped: {completed.id} after {completed.duration_ms}ms")
        self._event_bus.emit(AppEvent.TIMER_STOPPED, completed)
        return completed

    def pause_timer(self) -> None:
        """Freeze the visible counter. Persisted state is not touched."""
        if self.state.phase is not TimerPhase.RUNNING:
            return
        self._cancel_sampler()
        self.state.phase = TimerPhase.PAUSED
        logger.info("Timer paused")
        self._event_bus.emit(AppEvent.TIMER_PAUSED, self.state.current_entry)

    def resume_timer(self) -> None:
        """Restart the counter of a paused timer.

        Needs a running event loop, since the sampler is an asyncio task.
        """
        entry = self.state.current_entry
        if self.state.phase is not TimerPhase.PAUSED or entry is None:
            return
        self.state.phase = TimerPhase.RUNNING
        self._refresh_elapsed(entry)
        self._start_sampler()
        logger.info("Timer resumed")
        self._event_bus.emit(AppEvent.TIMER_RESUMED, entry)

    async def discard_timer(self) -> Optional[TimeEntry]:
        """Drop the active entry without logging it.

        Returns:
            The discarded entry, or None if no timer was active.
        """
        async with self._transition_lock:
            entry = self.state.current_entry
            if entry is None:
                return None
            self._reset()
            await self._save_active(None)
        logger.info(f"Timer discarded: {entry.id}")
        self._event_bus.emit(AppEvent.TIMER_DISCARDED, entry)
        return entry

    async def recover(self) -> Optional[TimeEntry]:
        """Resume a timer that was running when the app last exited.

        If the saved entry is already in the log, the app stopped between
        writing the log and clearing the active record; the stale record is
        removed instead of resuming a finished session.

        Returns:
            The recovered entry, or None if there was nothing to resume.
        """
        async with self._transition_lock:
            if self.state.current_entry is not None:
                return None
            try:
                entry = await self._time_entry_svc.load_active_entry()
            except DatabaseError as e:
                record_persistence_error(self.state, self._event_bus, LOAD_ERROR_MESSAGE, e)
                return None
            if entry is None:
                return None

            if self.state.get_entry_by_id(entry.id) is not None:
                logger.warning(f"Active entry {entry.id} already logged, clearing stale record")
                await self._save_active(None)
                return None

            if entry.end_time is not None:
                entry = replace(entry, end_time=None)

            self.state.current_entry = entry
            self.state.phase = TimerPhase.RUNNING
            self._refresh_elapsed(entry)
            self._start_sampler()

        logger.info(f"Timer recovered: {entry.id} ({self.state.elapsed_ms}ms elapsed)")
        self._event_bus.emit(AppEvent.TIMER_RECOVERED, entry)
        return entry

    def shutdown(self) -> None:
        """Cancel the sampler. The active record stays for the next launch."""
        self._cancel_sampler()
