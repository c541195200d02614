from __future__ import annotations

import queue
import threading
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, DefaultDict, List, Optional

from endaxis_core.event_types import EventType, as_event_type
from endaxis_core.events.registry import validate_payload


@dataclass(frozen=True)
class Event:
    type: EventType
    payload: Any = None  # MUST NOT be dict
    ts: float = field(default_factory=time.time)
    thread_id: int = field(default_factory=lambda: threading.get_ident())


Handler = Callable[[Event], None]


class EventBus:
    """
    Strict typed-payload EventBus.

    Rules:
    - Event.payload must be the registered payload dataclass for its type.
    - publish() only enqueues; handlers run in dispatch_pending(), which the host
      (Qt event pump, tests) drives. Commands therefore never run observer code
      in the middle of a mutation.
    """

    def __init__(self) -> None:
        self._q: "queue.Queue[Event]" = queue.Queue()
        self._handlers: DefaultDict[EventType, List[Handler]] = defaultdict(list)
        self._lock = threading.RLock()

    # ---------- publish side ----------
    def publish(self, event: Event) -> None:
        if not isinstance(event, Event):
            raise TypeError("publish() expects an Event")
        if isinstance(event.payload, dict):
            raise TypeError(f"dict payload is not allowed for {event.type.value}")
        validate_payload(event.type, event.payload)
        self._q.put(event)

    def post_payload(self, event_type: EventType | str, payload: Any) -> None:
        et = as_event_type(event_type)
        self.publish(Event(type=et, payload=payload))

    # ---------- subscribe side ----------
    def subscribe(self, event_type: EventType | str, handler: Handler) -> Callable[[], None]:
        et = as_event_type(event_type)
        if handler is None:
            raise ValueError("handler cannot be None")
        with self._lock:
            self._handlers[et].append(handler)

        def _unsub() -> None:
            self.unsubscribe(et, handler)

        return _unsub

    def unsubscribe(self, event_type: EventType | str, handler: Handler) -> None:
        et = as_event_type(event_type)
        with self._lock:
            if et not in self._handlers:
                return
            self._handlers[et] = [h for h in self._handlers[et] if h is not handler]

    # ---------- dispatch side ----------
    def dispatch_pending(
        self,
        *,
        max_events: int = 200,
        on_error: Optional[Callable[[Event, BaseException], None]] = None,
    ) -> int:
        dispatched = 0
        while dispatched < max_events:
            try:
                ev = self._q.get_nowait()
            except queue.Empty:
                break

            try:
                self._dispatch_one(ev)
            except Exception as e:
                if on_error is None:
                    raise
                on_error(ev, e)
            finally:
                self._q.task_done()

            dispatched += 1
        return dispatched

    def _dispatch_one(self, ev: Event) -> None:
        with self._lock:
            specific = list(self._handlers.get(ev.type, []))
            wildcard = list(self._handlers.get(EventType.ANY, []))

        for h in specific:
            h(ev)
        for h in wildcard:
            h(ev)

    def drain(self) -> List[Event]:
        """
        取出所有待分发事件但不调用 handler（测试 / 丢弃积压时使用）。
        """
        out: List[Event] = []
        while True:
            try:
                ev = self._q.get_nowait()
            except queue.Empty:
                break
            self._q.task_done()
            out.append(ev)
        return out

    def pending_count_approx(self) -> int:
        return int(self._q.qsize())
