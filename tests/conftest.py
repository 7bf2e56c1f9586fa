"""Shared fixtures for tracker tests."""
from pathlib import Path

import pytest
import pytest_asyncio

from timetally.api import TimeTrackerAPI
from timetally.core import ServiceContainer, bootstrap, shutdown
from timetally.database import MemoryStore, db
from timetally.models.entities import TimeEntryFormData

# 2023-11-14 22:13:20 UTC
START_MS = 1_700_000_000_000
TICK_SECONDS = 0.01


class FakeClock:
    """Controllable epoch-millisecond clock."""

    def __init__(self, now: int = START_MS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def form() -> TimeEntryFormData:
    return TimeEntryFormData(
        client_id="client-1",
        client_name="Ada Lovelace",
        service_type="Consultation",
        notes="  intake call  ",
        hourly_rate=60.0,
        billable=True,
    )


@pytest_asyncio.fixture
async def services(store: MemoryStore, clock: FakeClock) -> ServiceContainer:
    """Provide a fresh ServiceContainer backed by an in-memory store."""
    svc = await bootstrap(store=store, clock=clock, tick_interval=TICK_SECONDS)
    yield svc
    await shutdown(svc)


@pytest.fixture
def api(services: ServiceContainer) -> TimeTrackerAPI:
    return TimeTrackerAPI(services)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "tracker.db"


@pytest_asyncio.fixture
async def sqlite_services(db_path: Path, clock: FakeClock) -> ServiceContainer:
    """Provide a ServiceContainer backed by a SQLite file in tmp_path."""
    await db.close()
    svc = await bootstrap(db_path=db_path, clock=clock, tick_interval=TICK_SECONDS)
    yield svc
    await shutdown(svc)
