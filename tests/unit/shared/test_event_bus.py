"""Unit tests for domain event registration and the in-memory bus."""

from __future__ import annotations

from dataclasses import FrozenInstanceError

import pytest

from modules.coupons.events import CouponAssigned
from modules.orders.events import OrderCreated, OrderDeleted
from shared.domain.events import event_class_for
from shared.infrastructure.bus import InMemoryEventBus

pytestmark = pytest.mark.unit


class _Recorder:
    def __init__(self):
        self.events = []

    def handle(self, event):
        self.events.append(event)


class _Exploding:
    def handle(self, event):
        raise RuntimeError("handler failed")


class TestDomainEvents:
    def test_events_are_registered_by_wire_name(self):
        assert event_class_for("orderCreated") is OrderCreated
        assert event_class_for("orderDeleted") is OrderDeleted
        assert event_class_for("couponAssigned") is CouponAssigned

    def test_unknown_name(self):
        with pytest.raises(KeyError):
            event_class_for("nope")

    def test_events_are_immutable(self):
        event = OrderCreated(payload={})
        with pytest.raises(FrozenInstanceError):
            event.audience = "user:1"

    def test_each_event_gets_an_id(self):
        assert OrderCreated(payload={}).event_id != OrderCreated(payload={}).event_id


class TestInMemoryEventBus:
    def test_publishes_to_subscribers_of_the_event_type(self):
        bus = InMemoryEventBus()
        created, deleted = _Recorder(), _Recorder()
        bus.subscribe(OrderCreated, created)
        bus.subscribe(OrderDeleted, deleted)

        event = OrderCreated(payload={"id": 1})
        assert bus.publish(event) == 1
        assert created.events == [event]
        assert deleted.events == []

    def test_duplicate_subscription_is_ignored(self):
        bus = InMemoryEventBus()
        handler = _Recorder()
        bus.subscribe(OrderCreated, handler)
        bus.subscribe(OrderCreated, handler)

        assert bus.publish(OrderCreated(payload={})) == 1

    def test_failing_handler_does_not_stop_the_others(self):
        bus = InMemoryEventBus()
        recorder = _Recorder()
        bus.subscribe(OrderCreated, _Exploding())
        bus.subscribe(OrderCreated, recorder)

        assert bus.publish(OrderCreated(payload={})) == 1
        assert len(recorder.events) == 1

    def test_no_subscribers(self):
        assert InMemoryEventBus().publish(OrderCreated(payload={})) == 0
