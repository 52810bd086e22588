"""Envelopes — wrapping, change detection and the JSON wire format.

Upstream values are opaque. When one differs from the previous poll it is
deep-copied into a frozen ``Envelope`` together with the wrapper template
and a unix timestamp. On the wire an envelope is a JSON object::

    {"someKey": "Some Value", "upstream_data": ..., "last_update_ts": 1700000000}

In no-wrap mode the raw value goes out framed as a one-element JSON array
(``[value]``). The object/array asymmetry is part of the wire contract.
"""

from __future__ import annotations

import copy
import json
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

UPSTREAM_DATA_KEY = "upstream_data"
TIMESTAMP_KEY = "last_update_ts"

# Serialized state handed to connections that join before any data arrived.
EMPTY_STATE = "{}"


def unix_now() -> int:
    """Current wall-clock time in whole unix seconds."""
    return int(time.time())


@dataclass(frozen=True, slots=True)
class Envelope:
    """A wrapped upstream value.

    Attributes:
        upstream_data: Deep-copied snapshot of the upstream value.
        last_update_ts: Unix seconds at the moment of wrapping.
        template: Read-only copy of the wrapper template used.

    """

    upstream_data: Any
    last_update_ts: int
    template: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def to_wire(self) -> dict[str, Any]:
        """Flatten into the wire object. Reserved keys override template keys."""
        return {
            **self.template,
            UPSTREAM_DATA_KEY: self.upstream_data,
            TIMESTAMP_KEY: self.last_update_ts,
        }


def changed(previous: Any, current: Any) -> bool:
    """Check whether two upstream values differ.

    A missing value on either side (``None``) always counts as a change, so
    the first poll is never suppressed.
    """
    if previous is None or current is None:
        return True
    return bool(previous != current)


def wrap(template: Mapping[str, Any], raw: Any, *, now: int | None = None) -> Envelope:
    """Snapshot ``raw`` into an Envelope stamped with the current time."""
    return Envelope(
        upstream_data=copy.deepcopy(raw),
        last_update_ts=unix_now() if now is None else now,
        template=MappingProxyType(dict(template)),
    )


def frame_raw(raw: Any) -> list[Any]:
    """No-wrap framing: the raw value as the only element of a list."""
    return [copy.deepcopy(raw)]


def _default(value: Any) -> Any:
    if isinstance(value, Envelope):
        return value.to_wire()
    if isinstance(value, MappingProxyType):
        return dict(value)
    msg = f"Object of type {type(value).__name__} is not JSON serializable"
    raise TypeError(msg)


def encode(payload: Any) -> str:
    """Serialize an outbound payload as compact JSON text."""
    if isinstance(payload, Envelope):
        payload = payload.to_wire()
    return json.dumps(payload, separators=(",", ":"), default=_default)


class LatestState:
    """The most recently wrapped envelope, for connections that join late.

    The envelope is frozen and replaced wholesale, so readers on any thread
    see either the old or the new snapshot, never a mix.
    """

    __slots__ = ("_envelope",)

    def __init__(self) -> None:
        self._envelope: Envelope | None = None

    def get(self) -> Envelope | None:
        return self._envelope

    def set(self, envelope: Envelope) -> None:
        self._envelope = envelope

    def encode(self) -> str:
        """Wire text for the current state, ``{}`` before any data arrived."""
        envelope = self._envelope
        if envelope is None:
            return EMPTY_STATE
        return encode(envelope)
