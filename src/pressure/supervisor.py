"""Supervisor — start/stop for one instance's workers.

Each supervisor owns a private asyncio event loop on a dedicated daemon
thread. ``start()`` spins the loop up and spawns one task per worker;
``stop()`` halts the workers cooperatively, cancels whatever outlives the
grace period, and tears the loop down. Both are plain blocking calls, so
code on any thread can rely on them.

Once ``stop()`` returns every worker task has finished, so no worker will
start another send.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import TYPE_CHECKING, Any, Protocol

from pressure._errors import StopTimeout, SupervisorError
from pressure.config import DEFAULT_STOP_GRACE

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from pressure.observability.collector import PipelineCollector

_logger = logging.getLogger(__name__)


class Worker(Protocol):
    """What the supervisor needs from a worker."""

    name: str

    async def run(self) -> None: ...

    def halt(self) -> None: ...


class Supervisor:
    """Owns the running flag and the worker tasks of one instance.

    Args:
        build: Creates a fresh set of workers. Called on the event loop
            thread at every ``start()``.
        grace: Seconds to wait for workers to exit before cancelling them.
        name: Prefix for the loop thread and task names.

    """

    def __init__(
        self,
        build: Callable[[], Sequence[Worker]],
        *,
        grace: float = DEFAULT_STOP_GRACE,
        name: str = "pressure",
        collector: PipelineCollector | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._build = build
        self._grace = grace
        self._name = name
        self._collector = collector
        self._logger = logger or _logger
        self._running = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._workers: tuple[Worker, ...] = ()
        self._tasks: tuple[asyncio.Task[Any], ...] = ()
        self._lifecycle = threading.RLock()

    @property
    def running(self) -> bool:
        """True between ``start()`` and ``stop()``."""
        return self._running

    @property
    def workers(self) -> tuple[Worker, ...]:
        """Workers spawned by the last ``start()``."""
        return self._workers

    @property
    def tasks(self) -> tuple[str, ...]:
        """Names of worker tasks that have not finished yet."""
        return tuple(t.get_name() for t in self._tasks if not t.done())

    def start(self) -> None:
        """Start the workers, stopping any previous ones first."""
        with self._lifecycle:
            self.stop()
            self._running = True
            loop = asyncio.new_event_loop()
            thread = threading.Thread(
                target=self._run_loop,
                args=(loop,),
                name=f"{self._name}-loop",
                daemon=True,
            )
            thread.start()
            self._loop, self._thread = loop, thread
            try:
                asyncio.run_coroutine_threadsafe(self._spawn(), loop).result()
            except BaseException:
                self.stop()
                raise
            self._logger.debug("Started workers: %s", ", ".join(self.tasks))

    def stop(self) -> None:
        """Stop the workers and wait until they have fully exited.

        Raises:
            SupervisorError: If called from a worker on the supervisor's loop.

        """
        if threading.current_thread() is self._thread:
            msg = "stop() cannot be called from the worker event loop"
            raise SupervisorError(msg)

        with self._lifecycle:
            self._running = False
            loop, thread = self._loop, self._thread
            if loop is None or thread is None:
                return

            began = time.perf_counter()
            try:
                cancelled, timeout = asyncio.run_coroutine_threadsafe(
                    self._halt(), loop
                ).result()
            finally:
                loop.call_soon_threadsafe(loop.stop)
                thread.join()
                loop.close()
                self._loop = self._thread = None
                self._workers, self._tasks = (), ()

            if self._collector is not None:
                self._collector.record_stopped(
                    cancelled=cancelled,
                    duration_ms=(time.perf_counter() - began) * 1000,
                    error=timeout,
                )

    @staticmethod
    def _run_loop(loop: asyncio.AbstractEventLoop) -> None:
        asyncio.set_event_loop(loop)
        loop.run_forever()

    async def _spawn(self) -> None:
        self._workers = tuple(self._build())
        self._tasks = tuple(
            asyncio.create_task(worker.run(), name=f"{self._name}-{worker.name}")
            for worker in self._workers
        )

    async def _halt(self) -> tuple[tuple[str, ...], StopTimeout | None]:
        """Halt workers, cancel stragglers after the grace period, await all tasks.

        Returns:
            Names of the cancelled tasks, and the ``StopTimeout`` describing
            them (None when every worker exited in time).

        """
        for worker in self._workers:
            worker.halt()
        if not self._tasks:
            return (), None

        _, pending = await asyncio.wait(self._tasks, timeout=self._grace)
        cancelled = tuple(sorted(t.get_name() for t in pending))
        timeout = None
        if cancelled:
            timeout = StopTimeout(
                f"{', '.join(cancelled)} did not exit within {self._grace}s; cancelling"
            )
            self._logger.warning("%s", timeout)
            for task in pending:
                task.cancel()

        results = await asyncio.gather(*self._tasks, return_exceptions=True)
        for task, result in zip(self._tasks, results, strict=True):
            if isinstance(result, Exception):
                self._logger.error("%s exited with an error", task.get_name(), exc_info=result)
        return cancelled, timeout
