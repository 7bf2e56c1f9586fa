"""Headless bootstrap for the time tracker services.

Initializes storage, loads the entry log and resumes a timer left running
by a previous launch. Suitable for UI shells, scripts and tests.

Usage:
    from timetally.core import bootstrap, shutdown

    svc = await bootstrap(db_path=Path("tracker.db"))
    await svc.timer.start_timer(TimeEntryFormData("c-1", "Ada"))
    await shutdown(svc)
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from timetally.config import TICK_INTERVAL_SECONDS
from timetally.database import configure_db_path, db
from timetally.events import EventBus
from timetally.helpers import Clock, now_ms
from timetally.models.entities import TrackerState
from timetally.services.entry_log import EntryLogService
from timetally.services.time_entry_service import TimeEntryService
from timetally.services.timer import AsyncScheduler, TimerService


@dataclass
class ServiceContainer:
    """Container holding all initialized services for headless use."""
    state: TrackerState
    event_bus: EventBus
    store: Any
    time_entry: TimeEntryService
    entry_log: EntryLogService
    timer: TimerService


async def bootstrap(
    db_path: Optional[Path] = None,
    store: Any = None,
    clock: Optional[Clock] = None,
    tick_interval: float = TICK_INTERVAL_SECONDS,
    async_scheduler: Optional[AsyncScheduler] = None,
) -> ServiceContainer:
    """Build the services and load persisted state.

    Args:
        db_path: Custom SQLite path for the default store. Ignored when
            ``store`` is given.
        store: Any object with async ``get_item``/``set_item``/``remove_item``
            (for example ``MemoryStore``). Defaults to the SQLite database.
        clock: Callable returning epoch milliseconds. Defaults to wall clock.
        tick_interval: Seconds between elapsed-time samples.
        async_scheduler: Function that schedules a coroutine as a task
            (e.g. a UI framework's ``run_task``). Defaults to asyncio.

    Returns:
        ServiceContainer with the log loaded and any running timer resumed.
    """
    if store is None:
        if db_path is not None:
            configure_db_path(db_path)
        store = db
    clock = clock or now_ms

    state = TrackerState()
    event_bus = EventBus()
    time_entry_service = TimeEntryService(store)
    entry_log = EntryLogService(state, time_entry_service, event_bus, clock=clock)
    timer_service = TimerService(
        state,
        time_entry_service,
        entry_log,
        event_bus,
        clock=clock,
        tick_interval=tick_interval,
        async_scheduler=async_scheduler,
    )

    state.loading = True
    state.error = None
    try:
        await entry_log.load()
        await timer_service.recover()
    finally:
        state.loading = False

    return ServiceContainer(
        state=state,
        event_bus=event_bus,
        store=store,
        time_entry=time_entry_service,
        entry_log=entry_log,
        timer=timer_service,
    )


async def shutdown(services: Optional[ServiceContainer] = None) -> None:
    """Stop background sampling and close the database connection.

    A running timer stays persisted and is resumed by the next bootstrap.
    """
    if services is not None:
        services.timer.shutdown()
    await db.close()
