# File: endaxis_core/events/registry.py
from __future__ import annotations

from typing import Any, Dict, Tuple, Type

from endaxis_core.event_types import EventType
from endaxis_core.events import payloads as P

PayloadType = Type[Any]


def expected_payload_types() -> Dict[EventType, Tuple[PayloadType, ...]]:
    return {
        EventType.STATE_COMMITTED: (P.StateCommittedPayload,),
        EventType.HISTORY_RESTORED: (P.HistoryRestoredPayload,),

        EventType.SELECTION_CHANGED: (P.SelectionChangedPayload,),
        EventType.LINKING_CHANGED: (P.LinkingChangedPayload,),

        EventType.SCENARIO_CHANGED: (P.ScenarioChangedPayload,),
        EventType.PROJECT_LOADED: (P.ProjectLoadedPayload,),

        EventType.WARNING: (P.WarningPayload,),
    }


def validate_payload(event_type: EventType, payload: Any) -> None:
    if event_type is EventType.ANY:
        raise TypeError("cannot publish wildcard event type")

    mapping = expected_payload_types()
    allowed = mapping.get(event_type)

    if allowed is None:
        raise TypeError(f"No payload registry entry for event type: {event_type.value}")

    if not isinstance(payload, allowed):
        allowed_names = ", ".join([t.__name__ for t in allowed])
        got = type(payload).__name__
        raise TypeError(f"{event_type.value} payload type mismatch: expected [{allowed_names}], got {got}")
