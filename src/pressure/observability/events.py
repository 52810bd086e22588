"""Event model for pipeline observability.

Defines event types for the poll and broadcast workers and the supervisor.

All events are frozen dataclasses with:
- ``timestamp_ns``: Monotonic nanosecond timestamp
- Descriptive fields for the specific event type

Thread Safety:
    All events are frozen (immutable) and safe to share across threads.

"""

import time
from dataclasses import dataclass
from typing import Literal

type WorkerName = Literal["poll", "broadcast"]


# ---------------------------------------------------------------------------
# Poll worker events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PayloadQueued:
    """A changed upstream value was queued for broadcast.

    Attributes:
        wrapped: False when the payload was framed raw (no-wrap mode).
        queue_depth: Queue length right after the put.
        dropped: True if the oldest payload was discarded to make room.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    wrapped: bool
    queue_depth: int
    dropped: bool
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class UpstreamFailed:
    """The upstream source raised during a poll.

    Attributes:
        error: ``repr`` of the exception raised by the source.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    error: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Broadcast worker events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PayloadBroadcast:
    """A payload was sent to the registered connections.

    Attributes:
        clients_notified: Connections that accepted the message.
        clients_failed: Connections whose send raised.
        size_bytes: Length of the serialized message.
        duration_ms: Time spent serializing and sending.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    clients_notified: int
    clients_failed: int
    size_bytes: int
    duration_ms: float
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class SendFailed:
    """One connection's send raised.

    Attributes:
        connection: ``repr`` of the connection.
        error: ``repr`` of the exception.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    connection: str
    error: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Lifecycle events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class WorkerRestarted:
    """A worker loop crashed and was restarted.

    Attributes:
        worker: Which worker crashed.
        error: ``repr`` of the exception that escaped the loop.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    worker: WorkerName
    error: str
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class WorkersStopped:
    """The supervisor finished stopping its workers.

    Attributes:
        cancelled: Workers that outlived the grace period and were cancelled.
        duration_ms: Time spent inside ``stop()``.
        timestamp_ns: Monotonic nanosecond timestamp.
        error: ``repr`` of the ``StopTimeout`` when anything was cancelled.

    """

    cancelled: tuple[str, ...]
    duration_ms: float
    timestamp_ns: int
    error: str | None = None


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

type PipelineEvent = (
    PayloadQueued
    | UpstreamFailed
    | PayloadBroadcast
    | SendFailed
    | WorkerRestarted
    | WorkersStopped
)


def now_ns() -> int:
    """Return the current monotonic clock value in nanoseconds."""
    return time.monotonic_ns()
