"""Application configuration - single source of truth for all constants.

Contains storage keys, timer intervals, billing defaults and the enums
shared across services. Import from here instead of hardcoding values.
"""
import os
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).parent / ".env")


class TimerPhase(Enum):
    """Enum for timer state machine phases."""
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


class DateRangePreset(Enum):
    """Enum for the entry list period filters."""
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    ALL = "all"


# Key-value records; names match the mobile store so exported data stays readable
STORAGE_KEY_ACTIVE_ENTRY = "timeTracker_activeEntry"
STORAGE_KEY_ENTRIES = "timeTracker_entries"

DB_PATH = os.getenv("TIMETALLY_DB_PATH", "") or "timetally.db"

TICK_INTERVAL_SECONDS = 0.1

MS_PER_SECOND = 1000
MS_PER_HOUR = 60 * 60 * MS_PER_SECOND
WEEK_PRESET_DAYS = 7

DEFAULT_SERVICE_TYPE = "General Service"
ENTRY_ID_PREFIX = "entry-"
CURRENCY_SYMBOL = "$"

LOAD_ERROR_MESSAGE = "Failed to load time entries"
SAVE_ERROR_MESSAGE = "Failed to save time entries"
SAVE_ACTIVE_ERROR_MESSAGE = "Failed to save running timer"
