"""Event records kept in the live-sync ``EventLog``.

Each record is an immutable, keyword-only dataclass carrying a monotonic
``timestamp_ns`` plus the facts of one occurrence in the graph pipeline,
the broadcast transport or a service lifecycle.
"""

import time
from dataclasses import dataclass
from typing import Literal


def now_ns() -> int:
    """Monotonic clock in nanoseconds, the timebase of every event."""
    return time.monotonic_ns()


@dataclass(frozen=True, slots=True, kw_only=True)
class _Stamped:
    timestamp_ns: int


# graph pipeline


@dataclass(frozen=True, slots=True, kw_only=True)
class GraphLoaded(_Stamped):
    """A graph file parsed cleanly and replaced the held graph.

    ``clients_notified`` counts transport clients that got the full sync.
    """

    path: str
    name: str
    nodes: int
    edges: int
    clients_notified: int


@dataclass(frozen=True, slots=True, kw_only=True)
class GraphSkipped(_Stamped):
    """A graph file could not be loaded; the previous graph stays."""

    path: str
    reason: str


@dataclass(frozen=True, slots=True, kw_only=True)
class EdgesDropped(_Stamped):
    """Edges naming unknown node ids were left out of layout."""

    graph: str
    dropped: int
    kept: int


@dataclass(frozen=True, slots=True, kw_only=True)
class FileBroadcast(_Stamped):
    """An HTML change went out to transport clients as ``file:changed``."""

    path: str
    kind: Literal["created", "modified", "deleted"]
    clients_notified: int


# transport


@dataclass(frozen=True, slots=True, kw_only=True)
class ClientConnected(_Stamped):
    client_id: str
    remote: str


@dataclass(frozen=True, slots=True, kw_only=True)
class ClientDisconnected(_Stamped):
    client_id: str


@dataclass(frozen=True, slots=True, kw_only=True)
class TransportFault(_Stamped):
    """A client message was rejected.

    ``code`` is ``INVALID_MESSAGE`` when an error reply was sent and
    ``UNKNOWN_TYPE`` when the message was dropped silently.
    """

    client_id: str
    code: str
    detail: str


# service lifecycle


@dataclass(frozen=True, slots=True, kw_only=True)
class ServiceEvent(_Stamped):
    """A live service started, stopped or failed.  ``detail`` holds a port,
    path or error text."""

    service: Literal["watcher", "transport", "content", "session"]
    action: Literal["started", "stopped", "failed", "info"]
    detail: str


type SyncEvent = (
    GraphLoaded
    | GraphSkipped
    | EdgesDropped
    | FileBroadcast
    | ClientConnected
    | ClientDisconnected
    | TransportFault
    | ServiceEvent
)
