"""Pipeline collector — records worker and supervisor events into an EventLog.

Thread Safety:
    The collector delegates to ``EventLog`` which is internally locked.
    Safe to share between the worker loop thread and caller threads.

"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pressure.observability.events import (
    PayloadBroadcast,
    PayloadQueued,
    SendFailed,
    UpstreamFailed,
    WorkerRestarted,
    WorkersStopped,
    now_ns,
)
from pressure.observability.log import EventLog

if TYPE_CHECKING:
    from pressure.observability.events import WorkerName


class PipelineCollector:
    """Event collector for one Pressure instance.

    Args:
        log: The EventLog to store events in.

    """

    __slots__ = ("_log",)

    def __init__(self, log: EventLog | None = None) -> None:
        self._log = log if log is not None else EventLog()

    @property
    def log(self) -> EventLog:
        """The underlying event log."""
        return self._log

    # ----- Poll worker -----

    def record_queued(self, *, wrapped: bool, queue_depth: int, dropped: bool = False) -> None:
        """Record a payload entering the hand-off queue."""
        self._log.append(
            PayloadQueued(
                wrapped=wrapped,
                queue_depth=queue_depth,
                dropped=dropped,
                timestamp_ns=now_ns(),
            )
        )

    def record_upstream_failure(self, error: BaseException) -> None:
        """Record a failed call to the upstream source."""
        self._log.append(UpstreamFailed(error=repr(error), timestamp_ns=now_ns()))

    # ----- Broadcast worker -----

    def record_broadcast(
        self,
        *,
        clients_notified: int = 0,
        clients_failed: int = 0,
        size_bytes: int = 0,
        duration_ms: float = 0.0,
    ) -> None:
        """Record one broadcast cycle."""
        self._log.append(
            PayloadBroadcast(
                clients_notified=clients_notified,
                clients_failed=clients_failed,
                size_bytes=size_bytes,
                duration_ms=duration_ms,
                timestamp_ns=now_ns(),
            )
        )

    def record_send_failure(self, connection: object, error: BaseException) -> None:
        """Record a send that raised for one connection."""
        self._log.append(
            SendFailed(connection=repr(connection), error=repr(error), timestamp_ns=now_ns())
        )

    # ----- Lifecycle -----

    def record_restart(self, worker: WorkerName, error: BaseException) -> None:
        """Record a worker loop restart after a crash."""
        self._log.append(WorkerRestarted(worker=worker, error=repr(error), timestamp_ns=now_ns()))

    def record_stopped(
        self,
        *,
        cancelled: tuple[str, ...] = (),
        duration_ms: float = 0.0,
        error: BaseException | None = None,
    ) -> None:
        """Record the end of a supervisor stop."""
        self._log.append(
            WorkersStopped(
                cancelled=cancelled,
                duration_ms=duration_ms,
                timestamp_ns=now_ns(),
                error=repr(error) if error is not None else None,
            )
        )
