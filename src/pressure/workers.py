"""Poll and broadcast workers — the two halves of the pipeline.

The poll worker calls the upstream source on a fixed delay, suppresses
values equal to the previous one, and queues a payload for each change.
The broadcast worker takes one payload at a time off the queue, serializes
it once, and sends the text to every registered connection.

Both run as asyncio tasks on the instance's event loop and share the same
shape:

- ``run()`` loops until ``halt()`` is called.
- Sleeps between cycles wake early on halt, so shutdown is bounded by one
  in-flight source call or send.
- An exception escaping a cycle is logged as a ``WorkerCrash`` and the loop
  restarts after one delay. A worker never dies while it is not halted.

Source failures and send failures are handled inside the cycle and never
reach the crash path.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any, Literal

from pressure._errors import SendError, UpstreamReadError, WorkerCrash
from pressure.config import DEFAULT_DELAY
from pressure.envelope import changed, encode, frame_raw, wrap
from pressure.registry import deliver

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from pressure._types import Encoder, UpstreamSource
    from pressure.envelope import LatestState
    from pressure.handoff import HandoffQueue
    from pressure.observability.collector import PipelineCollector
    from pressure.observability.events import WorkerName
    from pressure.registry import ConnectionRegistry

_logger = logging.getLogger(__name__)

type WorkerState = Literal["idle", "polling", "broadcasting", "stopped"]


class _Worker:
    """Shared run/halt/restart loop for both workers."""

    name: WorkerName
    active_state: WorkerState

    def __init__(
        self,
        *,
        delay: float,
        collector: PipelineCollector | None,
        logger: logging.Logger | None,
    ) -> None:
        self._delay = delay
        self._collector = collector
        self._logger = logger or _logger
        self._halted = asyncio.Event()
        self.state: WorkerState = "idle"

    @property
    def halted(self) -> bool:
        return self._halted.is_set()

    def halt(self) -> None:
        """Ask the loop to exit. Must be called on the worker's event loop."""
        self._halted.set()

    async def run(self) -> None:
        """Run cycles until halted, restarting the loop after a crash."""
        self.state = self.active_state
        try:
            while not self._halted.is_set():
                try:
                    await self._guarded_loop()
                except WorkerCrash as crash:
                    self._logger.error("%s; restarting", crash, exc_info=crash.__cause__)
                    if self._collector is not None:
                        self._collector.record_restart(self.name, crash.__cause__ or crash)
                    await self._pause()
        finally:
            self.state = "stopped"
            self._on_exit()

    async def _guarded_loop(self) -> None:
        try:
            await self._loop()
        except Exception as exc:
            msg = f"{self.name} worker error: {exc!r}"
            raise WorkerCrash(msg) from exc

    async def _pause(self) -> None:
        """Sleep one delay, waking early if halted."""
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(self._halted.wait(), self._delay)

    async def _loop(self) -> None:
        raise NotImplementedError

    def _on_exit(self) -> None:
        pass


class PollWorker(_Worker):
    """Reads the upstream source and queues a payload for each change.

    Plain callables run on a private single-thread executor, so a slow
    source stalls the poll cycle without blocking the event loop. No
    timeout is imposed on the source. ``async def`` sources are awaited
    directly.

    Args:
        source: Zero-argument upstream callable.
        queue: Hand-off queue to the broadcast worker.
        latest: Receives every new envelope for late-joining connections.
        template: Returns the wrapper template; read at wrap time.
        no_wrap: Queue ``[raw]`` instead of the envelope.
        delay: Seconds between polls.

    """

    name = "poll"
    active_state = "polling"

    def __init__(
        self,
        source: UpstreamSource,
        queue: HandoffQueue,
        latest: LatestState,
        *,
        template: Callable[[], Mapping[str, Any]] = dict,
        no_wrap: bool = False,
        delay: float = DEFAULT_DELAY,
        collector: PipelineCollector | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(delay=delay, collector=collector, logger=logger)
        self._source = source
        self._queue = queue
        self._latest = latest
        self._template = template
        self._no_wrap = no_wrap
        self._last_seen: Any = None
        self._executor: ThreadPoolExecutor | None = None

    async def _loop(self) -> None:
        while not self._halted.is_set():
            await self.poll_once()
            await self._pause()

    async def poll_once(self) -> bool:
        """Run one poll cycle without sleeping.

        Returns:
            True if a payload was queued.

        """
        try:
            raw = await self._read()
        except UpstreamReadError as exc:
            self._logger.warning("%s", exc)
            if self._collector is not None:
                self._collector.record_upstream_failure(exc.__cause__ or exc)
            return False

        if not changed(self._last_seen, raw):
            return False

        envelope = wrap(self._template(), raw)
        self._last_seen = envelope.upstream_data
        self._latest.set(envelope)
        payload = frame_raw(raw) if self._no_wrap else envelope

        if self._halted.is_set():
            return False
        try:
            dropped = self._queue.put(payload)
        except asyncio.QueueShutDown:
            return False
        if dropped:
            self._logger.debug("Hand-off queue full; dropped the oldest payload")
        if self._collector is not None:
            self._collector.record_queued(
                wrapped=not self._no_wrap, queue_depth=len(self._queue), dropped=dropped
            )
        return True

    async def _read(self) -> Any:
        try:
            if inspect.iscoroutinefunction(self._source):
                return await self._source()
            loop = asyncio.get_running_loop()
            value = await loop.run_in_executor(self._get_executor(), self._source)
            if inspect.isawaitable(value):
                # callable object with an async __call__
                value = await value
            return value
        except Exception as exc:
            msg = f"Upstream source failed: {exc!r}"
            raise UpstreamReadError(msg) from exc

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="pressure-upstream"
            )
        return self._executor

    def close(self) -> None:
        """Release the source executor without waiting for a stuck call."""
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    def _on_exit(self) -> None:
        self.close()


class BroadcastWorker(_Worker):
    """Sends each queued payload to every registered connection.

    A connection whose ``send`` raises is logged and skipped for that cycle
    only; it stays registered. Removing connections is the accept layer's job.

    Args:
        queue: Hand-off queue from the poll worker.
        registry: Connections to send to.
        encoder: Turns a payload into wire text.
        delay: Seconds to sleep after each broadcast.

    """

    name = "broadcast"
    active_state = "broadcasting"

    def __init__(
        self,
        queue: HandoffQueue,
        registry: ConnectionRegistry,
        *,
        encoder: Encoder = encode,
        delay: float = DEFAULT_DELAY,
        collector: PipelineCollector | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(delay=delay, collector=collector, logger=logger)
        self._queue = queue
        self._registry = registry
        self._encoder = encoder

    def halt(self) -> None:
        """Ask the loop to exit and wake it if it is waiting on the queue."""
        super().halt()
        self._queue.close()

    async def _loop(self) -> None:
        while not self._halted.is_set():
            try:
                payload = await self._queue.get()
            except asyncio.QueueShutDown:
                self._halted.set()
                return
            self.broadcast(payload)
            await self._pause()

    def broadcast(self, payload: Any) -> int:
        """Serialize one payload and send it to every registered connection.

        Returns:
            Number of connections that accepted the message.

        """
        start = time.perf_counter()
        message = self._encoder(payload)
        sent = failed = 0
        with self._registry.delivering():
            for conn in self._registry.snapshot():
                if self._halted.is_set():
                    break
                try:
                    deliver(conn, message)
                except SendError as exc:
                    failed += 1
                    self._logger.warning("%s", exc)
                    if self._collector is not None:
                        self._collector.record_send_failure(conn, exc.__cause__ or exc)
                else:
                    sent += 1

        if self._collector is not None:
            self._collector.record_broadcast(
                clients_notified=sent,
                clients_failed=failed,
                size_bytes=len(message.encode()),
                duration_ms=(time.perf_counter() - start) * 1000,
            )
        return sent
