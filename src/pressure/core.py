"""Pressure — read from one upstream source, broadcast to many connections.

Wires one ``ConnectionRegistry``, one ``HandoffQueue`` and the two workers
together under a ``Supervisor``::

    pressure = Pressure(lambda: read_sensor(), wrapper_template={"site": "north"})

    def on_open(ws):
        pressure.add(ws)        # ws immediately receives the latest state

    def on_close(ws):
        pressure.remove(ws)

Every instance is self-contained: its own registry, queue, event loop and
workers. Nothing is shared between instances.
"""

from __future__ import annotations

import dataclasses
import logging
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Self

from pressure.config import PressureConfig
from pressure.config_loader import normalize_options
from pressure.envelope import LatestState
from pressure.handoff import HandoffQueue
from pressure.registry import ConnectionRegistry
from pressure.supervisor import Supervisor
from pressure.workers import BroadcastWorker, PollWorker

if TYPE_CHECKING:
    from collections.abc import Mapping

    from pressure._types import Connection, UpstreamSource
    from pressure.envelope import Envelope
    from pressure.observability.collector import PipelineCollector


class Pressure:
    """Polls an upstream source and broadcasts changes to connections.

    Args:
        source: Zero-argument callable (plain or ``async def``) returning the
            current upstream value. Fixed for the lifetime of the instance.
        config: Base configuration. Keyword options override its fields.
        collector: Records pipeline events when given.
        logger: Logger for this instance's workers, registry and supervisor.
        **options: Any ``PressureConfig`` field, or a legacy alias such as
            ``poll_interval`` or ``websocket_worker_delay``.

    The workers start immediately unless ``start=False``.

    """

    def __init__(
        self,
        source: UpstreamSource,
        config: PressureConfig | None = None,
        *,
        collector: PipelineCollector | None = None,
        logger: logging.Logger | None = None,
        **options: Any,
    ) -> None:
        base = config if config is not None else PressureConfig()
        if options:
            base = dataclasses.replace(base, **normalize_options(options))
        self._config = base
        self._source = source
        self._collector = collector
        self._logger = logger
        self._wrapper_template: MappingProxyType[str, Any] = base.wrapper_template
        self._latest = LatestState()
        self._registry = ConnectionRegistry(
            self._latest.encode, collector=collector, logger=logger
        )
        self._queue: HandoffQueue | None = None
        self._supervisor = Supervisor(
            self._build_workers,
            grace=base.stop_grace,
            collector=collector,
            logger=logger,
        )
        if base.start:
            self.start()

    # ----- Configuration -----

    @property
    def config(self) -> PressureConfig:
        return self._config

    @property
    def source(self) -> UpstreamSource:
        return self._source

    @property
    def wrapper_template(self) -> Mapping[str, Any]:
        """Keys merged into every envelope. Applies from the next change on."""
        return self._wrapper_template

    @wrapper_template.setter
    def wrapper_template(self, template: Mapping[str, Any]) -> None:
        self._wrapper_template = MappingProxyType(dict(template))

    # ----- Connections -----

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    @property
    def connections(self) -> frozenset[Connection]:
        """Snapshot of the registered connections."""
        return self._registry.snapshot()

    def add(self, conn: Connection) -> bool:
        """Register a connection; it is sent the latest state right away.

        Returns:
            False if the connection was already registered.

        """
        return self._registry.add(conn)

    def remove(self, conn: Connection) -> Connection | None:
        """Unregister a connection, returning it, or None if it was unknown."""
        return self._registry.remove(conn)

    # ----- State -----

    @property
    def latest(self) -> Envelope | None:
        """The most recent envelope, or None before any data arrived."""
        return self._latest.get()

    @property
    def queue(self) -> HandoffQueue | None:
        """The hand-off queue of the latest start, or None before the first start."""
        return self._queue

    @property
    def dropped(self) -> int:
        """Payloads the current queue discarded because it was full."""
        return self._queue.dropped if self._queue is not None else 0

    # ----- Lifecycle -----

    @property
    def running(self) -> bool:
        return self._supervisor.running

    @property
    def supervisor(self) -> Supervisor:
        return self._supervisor

    def start(self) -> None:
        """Start (or restart) the workers."""
        self._supervisor.start()

    def stop(self) -> None:
        """Stop the workers. No broadcast is sent after this returns."""
        self._supervisor.stop()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def __repr__(self) -> str:
        state = "running" if self.running else "stopped"
        return f"<Pressure {state} connections={len(self._registry)}>"

    def _build_workers(self) -> tuple[PollWorker, BroadcastWorker]:
        config = self._config
        queue = HandoffQueue(maxsize=config.queue_maxsize)
        self._queue = queue
        poll = PollWorker(
            self._source,
            queue,
            self._latest,
            template=lambda: self._wrapper_template,
            no_wrap=config.no_wrap,
            delay=config.read_worker_delay,
            collector=self._collector,
            logger=self._logger,
        )
        broadcast = BroadcastWorker(
            queue,
            self._registry,
            delay=config.broadcast_worker_delay,
            collector=self._collector,
            logger=self._logger,
        )
        return poll, broadcast
