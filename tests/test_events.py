"""Tests for the event bus."""
from timetally.events import AppEvent, EventBus


class TestEventBus:
    def test_delivers_to_subscribers(self):
        bus = EventBus()
        received = []
        bus.subscribe(AppEvent.ENTRY_ADDED, received.append)
        bus.emit(AppEvent.ENTRY_ADDED, "payload")
        assert received == ["payload"]

    def test_unsubscribe_stops_delivery(self):
        bus = EventBus()
        received = []
        sub = bus.subscribe(AppEvent.TIMER_TICK, received.append)
        sub.unsubscribe()
        sub.unsubscribe()
        bus.emit(AppEvent.TIMER_TICK, 100)
        assert received == []
        assert not sub.active
        assert bus.listener_count(AppEvent.TIMER_TICK) == 0

    def test_failing_handler_does_not_block_others(self, caplog):
        bus = EventBus()
        received = []

        def broken(_data):
            raise RuntimeError("boom")

        bus.subscribe(AppEvent.TIMER_STOPPED, broken)
        bus.subscribe(AppEvent.TIMER_STOPPED, received.append)
        bus.emit(AppEvent.TIMER_STOPPED, 1)
        assert received == [1]
        assert "TIMER_STOPPED" in caplog.text

    def test_buses_are_independent(self):
        a, b = EventBus(), EventBus()
        received = []
        a.subscribe(AppEvent.ENTRIES_CLEARED, received.append)
        b.emit(AppEvent.ENTRIES_CLEARED)
        assert received == []
