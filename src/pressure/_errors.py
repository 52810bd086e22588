"""Pressure error hierarchy.

All pressure-specific errors inherit from PressureError for easy catching.

The runtime errors (upstream, send, crash, stop timeout) are never raised to
callers of the public API. Workers build them around the original exception
so that logs and the observability log carry one consistent type.
"""


class PressureError(Exception):
    """Base error for all pressure operations."""


class ConfigError(PressureError):
    """Invalid or missing configuration."""


class UpstreamReadError(PressureError):
    """The upstream source raised while being polled."""


class SendError(PressureError):
    """A downstream connection failed to accept a message."""


class WorkerCrash(PressureError):
    """An unexpected exception escaped a worker loop."""


class StopTimeout(PressureError):
    """A worker did not exit within the stop grace period."""


class SupervisorError(PressureError):
    """The supervisor was driven from a context it cannot serve."""
