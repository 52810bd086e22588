"""Pressure — poll one upstream source, broadcast changes to many connections.

A small two-worker pipeline: a poll worker calls a user-supplied source on a
fixed delay and queues every changed value; a broadcast worker serializes
each queued value to JSON and sends it to every registered connection.
Connections are any objects with a ``send(text)`` method, typically
websockets handed over by a server's accept handler.

Quick start::

    from pressure import Pressure

    pressure = Pressure(read_temperature, wrapper_template={"unit": "C"})
    pressure.add(ws)       # ws gets the latest state immediately
    ...
    pressure.remove(ws)
    pressure.stop()

Wire format::

    {"unit": "C", "upstream_data": 21.5, "last_update_ts": 1700000000}
    [21.5]                                   # with no_wrap=True

"""

__version__ = "0.1.0"
__all__ = [
    "ConnectionRegistry",
    "Envelope",
    "Pressure",
    "PressureConfig",
    "__version__",
    "load_config",
]


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import pressure`` fast while providing a clean top-level API.
    """
    if name == "Pressure":
        from pressure.core import Pressure

        return Pressure

    if name == "PressureConfig":
        from pressure.config import PressureConfig

        return PressureConfig

    if name == "ConnectionRegistry":
        from pressure.registry import ConnectionRegistry

        return ConnectionRegistry

    if name == "Envelope":
        from pressure.envelope import Envelope

        return Envelope

    if name == "load_config":
        from pressure.config_loader import load_config

        return load_config

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
