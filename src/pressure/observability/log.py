"""Event log — the last N pipeline events, newest kept.

Appended from the worker loop thread, read from whatever thread inspects
the instance, so every access goes through one lock.
"""

import threading
from collections import deque

from pressure.observability.events import PipelineEvent


class EventLog:
    """Ring buffer of ``PipelineEvent`` objects.

    Args:
        max_events: How many events to keep; older ones fall off the front.

    """

    __slots__ = ("_events", "_lock")

    def __init__(self, max_events: int = 10_000) -> None:
        self._events: deque[PipelineEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def append(self, event: PipelineEvent) -> None:
        with self._lock:
            self._events.append(event)

    def query(self, *, event_type: type | None = None, limit: int = 100) -> list[PipelineEvent]:
        """Events of ``event_type`` (all types if None), newest first."""
        with self._lock:
            matches = [
                event
                for event in reversed(self._events)
                if event_type is None or isinstance(event, event_type)
            ]
        return matches[:limit]

    def recent(self, n: int = 20) -> list[PipelineEvent]:
        """The last ``n`` events, oldest first."""
        with self._lock:
            return list(self._events)[-n:]

    def clear(self) -> int:
        with self._lock:
            count = len(self._events)
            self._events.clear()
        return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
