"""
Tests for the notification layer: event envelope, publishing with retry
and channel routing of EventPublisher.
"""

import json
from decimal import Decimal

import pytest
import redis.asyncio as redis

from shared.infrastructure.events import (
    CART_ITEM_ADDED,
    MAX_EVENT_SIZE,
    ORDER_STATUS_CHANGED,
    PAYMENT_COMPLETED,
    PAYMENT_READY,
    Event,
    EventPublisher,
    calculate_retry_delay_with_jitter,
    channel_kitchen,
    channel_staff,
    channel_table_session,
    publish_event,
)


class FlakyRedis:
    """Async stand-in for a Redis client that fails a given number of times."""

    def __init__(self, failures: int = 0):
        self.failures = failures
        self.calls: list[tuple[str, str]] = []

    async def publish(self, channel, message):
        self.calls.append((channel, message))
        if len(self.calls) <= self.failures:
            raise redis.ConnectionError("connection refused")
        return 1


class TestEventSchema:

    def test_round_trip_keeps_fields(self):
        event = Event(type=CART_ITEM_ADDED, session_id=5, entity={"id": 1}, actor={"diner_name": "Ana"})

        restored = Event.from_json(event.to_json())

        assert restored.type == CART_ITEM_ADDED
        assert restored.session_id == 5
        assert restored.entity == {"id": 1}
        assert restored.ts is not None

    def test_decimals_are_serialized_as_strings(self):
        event = Event(type=PAYMENT_READY, session_id=1, entity={"total": Decimal("51.30")})

        assert json.loads(event.to_json())["entity"]["total"] == "51.30"

    @pytest.mark.parametrize("session_id", [0, -1, True, "3"])
    def test_invalid_session_id(self, session_id):
        with pytest.raises(ValueError):
            Event(type=CART_ITEM_ADDED, session_id=session_id)

    def test_empty_type(self):
        with pytest.raises(ValueError):
            Event(type="", session_id=1)

    def test_channel_names(self):
        assert channel_table_session(12) == "session:12"
        assert channel_kitchen() == "kitchen"
        assert channel_staff() == "staff"


class TestPublishEvent:

    def test_retry_delay_is_bounded(self):
        for attempt in range(10):
            delay = calculate_retry_delay_with_jitter(attempt, base_delay=0.1)
            assert 0.1 <= delay <= 10.0

    @pytest.mark.asyncio
    async def test_publishes_to_channel(self):
        client = FlakyRedis()

        await publish_event(client, "session:1", Event(type=CART_ITEM_ADDED, session_id=1))

        assert client.calls[0][0] == "session:1"

    @pytest.mark.asyncio
    async def test_retries_transient_failures(self, monkeypatch):
        monkeypatch.setattr("shared.infrastructure.events.publisher.asyncio.sleep", _no_sleep)
        client = FlakyRedis(failures=2)

        assert await publish_event(client, "kitchen", Event(type=CART_ITEM_ADDED, session_id=1)) == 1
        assert len(client.calls) == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, monkeypatch):
        monkeypatch.setattr("shared.infrastructure.events.publisher.asyncio.sleep", _no_sleep)
        client = FlakyRedis(failures=10)

        with pytest.raises(redis.ConnectionError):
            await publish_event(client, "kitchen", Event(type=CART_ITEM_ADDED, session_id=1))

    @pytest.mark.asyncio
    async def test_oversized_event_rejected(self):
        event = Event(type=CART_ITEM_ADDED, session_id=1, entity={"notes": "x" * (MAX_EVENT_SIZE + 1)})

        with pytest.raises(ValueError):
            await publish_event(FlakyRedis(), "session:1", event)


class TestEventPublisherRouting:

    @pytest.mark.asyncio
    async def test_status_change_reaches_table_kitchen_and_staff(self, publisher):
        await publisher.order_status_changed(3, 10, "waiting", "preparing")

        event, channels = publisher.published[0]
        assert event.type == ORDER_STATUS_CHANGED
        assert event.entity == {"order_id": 10, "from_status": "waiting", "to_status": "preparing"}
        assert channels == ["session:3", "kitchen", "staff"]

    @pytest.mark.asyncio
    async def test_cart_events_stay_at_the_table(self, publisher):
        await publisher.cart_event(CART_ITEM_ADDED, 3, {"id": 1}, diner_name="Ana")

        event, channels = publisher.published[0]
        assert channels == ["session:3"]
        assert event.actor["diner_name"] == "Ana"

    @pytest.mark.asyncio
    async def test_payment_completed_reaches_table_and_staff(self, publisher):
        await publisher.payment_completed(3, {"id": 7, "completed_by": "Rosa"}, session_ended=True)

        event, channels = publisher.published[0]
        assert event.type == PAYMENT_COMPLETED
        assert event.entity["session_ended"] is True
        assert event.actor == {"diner_name": "Rosa", "role": "WAITER"}
        assert channels == ["session:3", "staff"]

    @pytest.mark.asyncio
    async def test_disabled_events_are_dropped(self, monkeypatch):
        monkeypatch.setattr("shared.infrastructure.events.domain_publishers.settings.events_enabled", False)

        async def fail_pool():
            raise AssertionError("Redis must not be contacted")

        monkeypatch.setattr("shared.infrastructure.events.domain_publishers.get_redis_pool", fail_pool)

        await EventPublisher().payment_ready(1)

    @pytest.mark.asyncio
    async def test_redis_failure_does_not_propagate(self, monkeypatch):
        monkeypatch.setattr("shared.infrastructure.events.domain_publishers.settings.events_enabled", True)

        async def broken_pool():
            raise redis.ConnectionError("down")

        monkeypatch.setattr("shared.infrastructure.events.domain_publishers.get_redis_pool", broken_pool)

        await EventPublisher().payment_ready(1)


async def _no_sleep(_delay):
    return None
