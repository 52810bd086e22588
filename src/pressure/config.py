"""Pressure configuration.

PressureConfig is the per-instance configuration object, frozen after creation.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from pressure._errors import ConfigError

# The default delay between loops of worker tasks.
DEFAULT_DELAY = 1.0 / 20.0

# Seconds a worker gets to exit cooperatively before it is cancelled.
DEFAULT_STOP_GRACE = 5.0


def _readonly(template: Any) -> MappingProxyType[str, Any]:
    if isinstance(template, MappingProxyType):
        return template
    try:
        return MappingProxyType(dict(template))
    except (TypeError, ValueError) as exc:
        msg = f"wrapper_template must be a mapping, got {type(template).__name__}"
        raise ConfigError(msg) from exc


@dataclass(frozen=True, slots=True)
class PressureConfig:
    """Configuration for a Pressure instance.

    Attributes:
        no_wrap: Send upstream data as a one-element JSON array instead of
            wrapping it in an envelope with metadata.
        read_worker_delay: Seconds to sleep between polls of the upstream source.
        broadcast_worker_delay: Seconds to sleep between broadcasts.
        start: Start the workers as soon as the instance is constructed.
        wrapper_template: Static keys merged into every envelope. Stored as a
            read-only mapping.
        queue_maxsize: Bound on the hand-off queue (0 = unbounded). When full,
            the oldest queued payload is dropped.
        stop_grace: Seconds ``stop()`` waits for workers before cancelling them.

    """

    no_wrap: bool = False
    read_worker_delay: float = DEFAULT_DELAY
    broadcast_worker_delay: float = DEFAULT_DELAY
    start: bool = True
    wrapper_template: MappingProxyType[str, Any] = field(
        default_factory=lambda: MappingProxyType({})
    )
    queue_maxsize: int = 0
    stop_grace: float = DEFAULT_STOP_GRACE

    def __post_init__(self) -> None:
        for name in ("read_worker_delay", "broadcast_worker_delay", "stop_grace"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int | float) or value < 0:
                msg = f"{name} must be a non-negative number, got {value!r}"
                raise ConfigError(msg)
        if (
            isinstance(self.queue_maxsize, bool)
            or not isinstance(self.queue_maxsize, int)
            or self.queue_maxsize < 0
        ):
            msg = f"queue_maxsize must be a non-negative integer, got {self.queue_maxsize!r}"
            raise ConfigError(msg)
        object.__setattr__(self, "wrapper_template", _readonly(self.wrapper_template))

    @property
    def bounded(self) -> bool:
        """True when the hand-off queue has a size limit."""
        return self.queue_maxsize > 0
