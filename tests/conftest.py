"""Shared test fixtures for pressure."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterator
from typing import Any

import pytest

from pressure.core import Pressure


class FakeConnection:
    """Connection double that records every message it is sent."""

    def __init__(self, name: str = "conn") -> None:
        self.name = name
        self._messages: list[str] = []
        self._lock = threading.Lock()

    def send(self, message: str) -> None:
        with self._lock:
            self._messages.append(message)

    @property
    def messages(self) -> list[str]:
        with self._lock:
            return list(self._messages)

    def __repr__(self) -> str:
        return f"<FakeConnection {self.name}>"


class FlakyConnection(FakeConnection):
    """Connection whose sends raise for messages in ``fail_on``."""

    def __init__(self, name: str = "flaky", *, fail_on: frozenset[str] = frozenset()) -> None:
        super().__init__(name)
        self.fail_on = fail_on
        self.failures = 0

    def send(self, message: str) -> None:
        if not self.fail_on or message in self.fail_on:
            self.failures += 1
            msg = f"{self.name} is gone"
            raise ConnectionError(msg)
        super().send(message)


def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    """Poll ``predicate`` until it holds or ``timeout`` seconds pass."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


class ValueSequence:
    """Upstream source that returns the given values, then repeats the last."""

    def __init__(self, *values: Any) -> None:
        self._values = list(values)
        self.calls = 0
        self._lock = threading.Lock()

    def __call__(self) -> Any:
        with self._lock:
            index = min(self.calls, len(self._values) - 1)
            self.calls += 1
            return self._values[index]


@pytest.fixture
def conn() -> FakeConnection:
    return FakeConnection("c1")


@pytest.fixture
def make_pressure() -> Iterator[Callable[..., Pressure]]:
    """Build Pressure instances with fast delays; all are stopped on teardown."""
    created: list[Pressure] = []

    def factory(source: Callable[[], Any] = lambda: "value", **options: Any) -> Pressure:
        options.setdefault("read_worker_delay", 0.005)
        options.setdefault("broadcast_worker_delay", 0.005)
        options.setdefault("stop_grace", 1.0)
        p = Pressure(source, **options)
        created.append(p)
        return p

    yield factory

    for p in created:
        p.stop()
