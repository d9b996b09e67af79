"""
Tests for the in-process event bus.
"""

from datetime import timezone

import pytest

from app.core.events import Event, EventBus


class TestEventBus:
    """Test cases for EventBus."""

    @pytest.fixture
    def bus(self):
        return EventBus()

    def test_publish_without_subscribers(self, bus):
        assert bus.publish(Event("nobody.listens")) == 0

    def test_subscribers_receive_event(self, bus):
        received = []
        bus.subscribe("run.done", received.append)

        delivered = bus.publish(Event("run.done", {"created": 3}))

        assert delivered == 1
        assert received[0].payload == {"created": 3}

    def test_failing_subscriber_is_isolated(self, bus):
        received = []

        def broken(event):
            raise ValueError("boom")

        bus.subscribe("run.done", broken)
        bus.subscribe("run.done", received.append)

        assert bus.publish(Event("run.done")) == 1
        assert len(received) == 1

    def test_subscribe_twice_is_ignored(self, bus):
        received = []
        bus.subscribe("run.done", received.append)
        bus.subscribe("run.done", received.append)

        bus.publish(Event("run.done"))

        assert len(received) == 1

    def test_unsubscribe(self, bus):
        received = []
        bus.subscribe("run.done", received.append)
        bus.unsubscribe("run.done", received.append)

        assert bus.publish(Event("run.done")) == 0
        assert "run.done" not in bus.subscribers

    def test_subscribe_requires_callable(self, bus):
        with pytest.raises(TypeError):
            bus.subscribe("run.done", "not callable")

    def test_event_timestamp_is_timezone_aware(self):
        assert Event("run.done").timestamp.tzinfo is timezone.utc
