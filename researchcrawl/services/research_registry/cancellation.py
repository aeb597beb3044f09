from __future__ import annotations

import threading
from typing import Dict, Optional


class _StopTokens:
    """One stop event per running research; setting it asks workers to exit."""

    def __init__(self, *, event_factory=threading.Event):
        self._event_factory = event_factory
        self._events: Dict[int, threading.Event] = {}

    def issue(self, research_id: int) -> threading.Event:
        ev = self._event_factory()
        self._events[research_id] = ev
        return ev

    def get(self, research_id: int) -> Optional[threading.Event]:
        return self._events.get(research_id)

    def signal(self, research_id: int) -> bool:
        ev = self._events.get(research_id)
        if ev is None:
            return False
        ev.set()
        return True

    def discard(self, research_id: int) -> None:
        # holders of the event keep their reference; make sure it reads as stopped
        ev = self._events.pop(research_id, None)
        if ev is not None:
            ev.set()
