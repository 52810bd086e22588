"""Pipeline observability — event model for the poll/broadcast workers.

Records what the workers did (payloads queued and broadcast, upstream and
send failures, restarts, stops) as frozen dataclasses with nanosecond
timestamps, safe for concurrent production from the worker loop and
caller threads.

Quick Start:
    >>> from pressure.observability import EventLog, PipelineCollector
    >>> collector = PipelineCollector(EventLog())
    >>> # Pressure(source, collector=collector) records into collector.log

"""

from pressure.observability.collector import PipelineCollector
from pressure.observability.events import (
    PayloadBroadcast,
    PayloadQueued,
    PipelineEvent,
    SendFailed,
    UpstreamFailed,
    WorkerRestarted,
    WorkersStopped,
    now_ns,
)
from pressure.observability.log import EventLog

__all__ = [
    "EventLog",
    "PayloadBroadcast",
    "PayloadQueued",
    "PipelineCollector",
    "PipelineEvent",
    "SendFailed",
    "UpstreamFailed",
    "WorkerRestarted",
    "WorkersStopped",
    "now_ns",
]
