"""Timetally - local time tracking engine for client billing."""

__version__ = "0.1.0"
