from __future__ import annotations

from .event_pump import QtEventPump

__all__ = ["QtEventPump"]
