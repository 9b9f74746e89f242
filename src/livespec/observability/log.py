"""Bounded store for live-sync events.

The watcher task, the transport handlers and the content server all record
into one ``EventLog``; ``/__livespec/stats`` and the tests read it back.
Appends may come from worker threads (graph reads run in
``asyncio.to_thread``), so every access takes the lock.
"""

import threading
from collections import Counter, deque
from collections.abc import Iterable
from typing import Any

from livespec.observability.events import SyncEvent


def _subject(event: SyncEvent) -> str:
    """File path for file/graph events, client id for transport events."""
    return getattr(event, "path", None) or getattr(event, "client_id", None) or ""


class EventLog:
    """Ring buffer of ``SyncEvent`` with simple filtering.

    Args:
        max_events: Capacity; the oldest events fall off once it is reached.

    """

    __slots__ = ("_events", "_lock", "_max_events")

    def __init__(self, max_events: int = 10_000) -> None:
        self._max_events = max_events
        self._events: deque[SyncEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def append(self, event: SyncEvent) -> None:
        with self._lock:
            self._events.append(event)

    def append_many(self, events: Iterable[SyncEvent]) -> None:
        with self._lock:
            self._events.extend(events)

    def _snapshot(self) -> list[SyncEvent]:
        with self._lock:
            return list(self._events)

    def query(
        self,
        *,
        event_type: type | None = None,
        since_ns: int = 0,
        path: str | None = None,
        limit: int = 100,
    ) -> list[SyncEvent]:
        """Matching events, newest first.

        ``path`` is a substring match against the event's file path or,
        for transport events, its client id.
        """
        matched: list[SyncEvent] = []
        for event in reversed(self._snapshot()):
            if event_type is not None and not isinstance(event, event_type):
                continue
            if event.timestamp_ns < since_ns:
                continue
            if path is not None and path not in _subject(event):
                continue
            matched.append(event)
            if len(matched) == limit:
                break
        return matched

    def recent(self, n: int = 20) -> list[SyncEvent]:
        """The last ``n`` events in arrival order."""
        return self._snapshot()[-n:] if n > 0 else []

    def clear(self) -> int:
        """Drop every event; returns how many there were."""
        with self._lock:
            dropped = len(self._events)
            self._events.clear()
        return dropped

    def stats(self) -> dict[str, Any]:
        """Totals for ``/__livespec/stats``."""
        events = self._snapshot()
        return {
            "total": len(events),
            "max_events": self._max_events,
            "by_type": dict(Counter(type(e).__name__ for e in events)),
        }
