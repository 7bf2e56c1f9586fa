from enum import Enum, auto
from typing import Callable, Dict, Any
import uuid
import logging

logger = logging.getLogger(__name__)


class AppEvent(Enum):
    """Tracker events for the observer pattern."""
    TIMER_STARTED = auto()
    TIMER_TICK = auto()
    TIMER_PAUSED = auto()
    TIMER_RESUMED = auto()
    TIMER_STOPPED = auto()
    TIMER_DISCARDED = auto()
    TIMER_RECOVERED = auto()
    ENTRY_ADDED = auto()
    ENTRY_UPDATED = auto()
    ENTRY_DELETED = auto()
    ENTRIES_CLEARED = auto()
    ENTRIES_LOADED = auto()
    PERSISTENCE_ERROR = auto()


class Subscription:
    """Represents an event subscription that can be unsubscribed."""

    def __init__(self, event_bus: "EventBus", event: AppEvent, subscription_id: str):
        self._event_bus = event_bus
        self._event = event
        self._subscription_id = subscription_id
        self._active = True

    @property
    def id(self) -> str:
        return self._subscription_id

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        """Unsubscribe this subscription."""
        if self._active:
            self._event_bus._unsubscribe_by_id(self._event, self._subscription_id)
            self._active = False


class EventBus:
    """Event bus for decoupled communication between the engine and its views.

    Each ServiceContainer owns one bus, so two trackers in the same process
    (a relaunch simulated in tests, for instance) never see each other's events.
    """

    def __init__(self) -> None:
        # Dict[event -> Dict[subscription_id -> callback]]
        self._listeners: Dict[AppEvent, Dict[str, Callable[[Any], None]]] = {}

    def subscribe(self, event: AppEvent, callback: Callable[[Any], None]) -> Subscription:
        """Subscribe a callback to an event. Returns a Subscription for cleanup.

        Example:
            self._sub = bus.subscribe(AppEvent.TIMER_TICK, self.on_tick)
            # Later: self._sub.unsubscribe()
        """
        subscription_id = str(uuid.uuid4())
        self._listeners.setdefault(event, {})[subscription_id] = callback
        return Subscription(self, event, subscription_id)

    def _unsubscribe_by_id(self, event: AppEvent, subscription_id: str) -> None:
        if event in self._listeners:
            self._listeners[event].pop(subscription_id, None)

    def emit(self, event: AppEvent, data: Any = None) -> None:
        """Emit an event to all subscribers.

        A failing handler is logged and does not stop delivery to the rest.
        """
        # Copy to avoid modification during iteration
        for callback in list(self._listeners.get(event, {}).values()):
            try:
                callback(data)
            except Exception:
                logger.exception(f"Error in event handler for {event.name}")

    def listener_count(self, event: AppEvent) -> int:
        return len(self._listeners.get(event, {}))

    def clear(self) -> None:
        """Clear all event subscriptions."""
        self._listeners.clear()
