"""Recent chat, cancel and archive events for the `/logs` endpoint.

Entries are kept newest first in a bounded ring. Per-kind totals keep
counting after old entries fall off the ring, so the endpoint can report
how many cancels or upstream errors the process has seen overall.
"""
from __future__ import annotations

import os
from collections import Counter, deque
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Deque, Dict, List, Optional

DEFAULT_CAPACITY = int(os.getenv("EVENT_LOG_CAPACITY", "500"))


class EventLog:
    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        self.capacity = max(1, capacity)
        self._entries: Deque[Dict[str, Any]] = deque(maxlen=self.capacity)
        self._totals: Counter = Counter()
        self._lock = Lock()

    def add(self, kind: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        entry = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "kind": kind,
            "payload": dict(payload),
        }
        with self._lock:
            self._entries.appendleft(entry)
            self._totals[kind] += 1
        return entry

    def recent(self, limit: Optional[int] = None, kind: Optional[str] = None) -> List[Dict[str, Any]]:
        with self._lock:
            items = list(self._entries)
        if kind:
            items = [e for e in items if e["kind"] == kind]
        if limit is None:
            return items
        return items[: max(0, min(limit, self.capacity))]

    def totals(self) -> Dict[str, int]:
        """Events recorded per kind since start, including ones no longer held."""
        with self._lock:
            return dict(self._totals)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._totals.clear()


events = EventLog()


def add_event(kind: str, payload: Dict[str, Any]) -> None:
    events.add(kind, payload)


def get_events(limit: Optional[int] = None, kind: Optional[str] = None) -> List[Dict[str, Any]]:
    return events.recent(limit, kind)


def clear_events() -> None:
    events.clear()
