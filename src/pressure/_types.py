"""Shared type definitions for pressure."""

from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol


class Connection(Protocol):
    """A downstream consumer. Only ``send`` is ever called."""

    def send(self, message: str) -> Any: ...


# Zero-argument upstream callable, plain or ``async def``
type UpstreamSource = Callable[[], Any] | Callable[[], Awaitable[Any]]

# Static key/value mapping merged into every envelope
type WrapperTemplate = Mapping[str, Any]

# Turns an outbound payload into wire text
type Encoder = Callable[[Any], str]
