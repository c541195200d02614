# tests/test_event_bus.py
from __future__ import annotations

from typing import List

import pytest

from endaxis_core.event_bus import Event, EventBus
from endaxis_core.event_types import EventType, as_event_type
from endaxis_core.events.payloads import LinkingChangedPayload, WarningPayload


def test_publish_is_queued_until_dispatch() -> None:
    bus = EventBus()
    got: List[str] = []
    bus.subscribe(EventType.WARNING, lambda ev: got.append(ev.payload.msg))

    bus.post_payload(EventType.WARNING, WarningPayload(msg="a"))
    bus.post_payload("WARNING", WarningPayload(msg="b"))
    assert got == []
    assert bus.pending_count_approx() == 2

    assert bus.dispatch_pending() == 2
    assert got == ["a", "b"]


def test_wildcard_and_unsubscribe() -> None:
    bus = EventBus()
    seen: List[EventType] = []
    unsub = bus.subscribe(EventType.ANY, lambda ev: seen.append(ev.type))

    bus.post_payload(EventType.LINKING_CHANGED, LinkingChangedPayload(active=True, source_id="i1"))
    bus.dispatch_pending()
    unsub()
    bus.post_payload(EventType.WARNING, WarningPayload(msg="x"))
    bus.dispatch_pending()
    assert seen == [EventType.LINKING_CHANGED]


def test_payload_type_is_enforced() -> None:
    bus = EventBus()
    with pytest.raises(TypeError):
        bus.post_payload(EventType.WARNING, {"msg": "dict"})
    with pytest.raises(TypeError):
        bus.post_payload(EventType.WARNING, LinkingChangedPayload(active=False))
    with pytest.raises(TypeError):
        bus.publish(Event(type=EventType.ANY, payload=WarningPayload(msg="x")))
    with pytest.raises(ValueError):
        as_event_type("NOPE")


def test_handler_errors_reraise_or_go_to_callback() -> None:
    bus = EventBus()

    def bad(_ev: Event) -> None:
        raise RuntimeError("handler broke")

    bus.subscribe(EventType.WARNING, bad)
    bus.post_payload(EventType.WARNING, WarningPayload(msg="x"))
    with pytest.raises(RuntimeError):
        bus.dispatch_pending()

    errors: List[str] = []
    bus.post_payload(EventType.WARNING, WarningPayload(msg="y"))
    bus.dispatch_pending(on_error=lambda ev, err: errors.append(str(err)))
    assert errors == ["handler broke"]


def test_drain_returns_without_dispatching() -> None:
    bus = EventBus()
    called: List[int] = []
    bus.subscribe(EventType.WARNING, lambda _ev: called.append(1))
    bus.post_payload(EventType.WARNING, WarningPayload(msg="x"))
    events = bus.drain()
    assert [e.payload.msg for e in events] == ["x"]
    assert called == []
    assert bus.dispatch_pending() == 0


def test_dispatch_respects_max_events() -> None:
    bus = EventBus()
    for i in range(5):
        bus.post_payload(EventType.WARNING, WarningPayload(msg=str(i)))
    assert bus.dispatch_pending(max_events=3) == 3
    assert bus.dispatch_pending() == 2
