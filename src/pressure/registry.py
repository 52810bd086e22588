"""Connection registry — the set of downstream consumers.

Connections are added and removed by whatever accepts them (a websocket
handler, typically) from its own threads, while the broadcast worker
iterates over them. Iteration always works on a ``frozenset`` snapshot taken
under the lock, so membership changes never invalidate a running broadcast.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from pressure._errors import SendError
from pressure.envelope import EMPTY_STATE

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from pressure._types import Connection
    from pressure.observability.collector import PipelineCollector

_logger = logging.getLogger(__name__)


def deliver(conn: Connection, message: str) -> None:
    """Send one message to one connection.

    Raises:
        SendError: Wrapping whatever the connection raised.

    """
    try:
        conn.send(message)
    except Exception as exc:
        msg = f"Send to {conn!r} failed: {exc}"
        raise SendError(msg) from exc


def _empty_state() -> str:
    return EMPTY_STATE


class ConnectionRegistry:
    """Thread-safe set of connections with a greeting on join.

    Every newly added connection is immediately sent the current state, so a
    joiner never starts from a blank slate. A greeting that cannot be built
    or sent is logged; the connection stays registered.

    Args:
        greeting: Returns the serialized state to send to a new connection.
        collector: Optional event collector for send failures.
        logger: Logger to use instead of the module logger.

    """

    def __init__(
        self,
        greeting: Callable[[], str] = _empty_state,
        *,
        collector: PipelineCollector | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._connections: set[Connection] = set()
        self._lock = threading.Lock()
        self._delivery = threading.RLock()
        self._greeting = greeting
        self._collector = collector
        self._logger = logger or _logger

    def add(self, conn: Connection) -> bool:
        """Register a connection and send it the current state.

        The greeting is built, sent and the connection inserted while
        ``delivering()`` is held, so a broadcast never reaches the new
        connection ahead of its greeting.

        Returns:
            False if the connection was already registered (nothing is sent).

        """
        with self._delivery:
            if conn in self:
                return False
            self._greet(conn)
            with self._lock:
                self._connections.add(conn)
        return True

    def delivering(self) -> threading.RLock:
        """Lock held by anything sending to registered connections.

        Broadcasters take it around a whole fan-out; ``add`` takes it around
        the greeting.
        """
        return self._delivery

    def remove(self, conn: Connection) -> Connection | None:
        """Unregister a connection.

        Returns:
            The removed connection, or None if it was not registered.

        """
        with self._lock:
            if conn not in self._connections:
                return None
            self._connections.discard(conn)
        return conn

    def snapshot(self) -> frozenset[Connection]:
        """Point-in-time copy of the registered connections (no lock held on return)."""
        with self._lock:
            return frozenset(self._connections)

    def clear(self) -> int:
        """Drop every connection and return how many there were."""
        with self._lock:
            count = len(self._connections)
            self._connections.clear()
            return count

    def __contains__(self, conn: object) -> bool:
        with self._lock:
            return conn in self._connections

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def __iter__(self) -> Iterator[Connection]:
        return iter(self.snapshot())

    def _greet(self, conn: Connection) -> None:
        try:
            message = self._greeting()
        except Exception as exc:
            self._logger.warning("Greeting could not be encoded: %r", exc)
            if self._collector is not None:
                self._collector.record_send_failure(conn, exc)
            return
        try:
            deliver(conn, message)
        except SendError as exc:
            self._logger.warning("Greeting failed: %s", exc)
            if self._collector is not None:
                self._collector.record_send_failure(conn, exc.__cause__ or exc)
