"""Event timeline shared by the watcher pipeline, the transport and the session.

``SyncCollector`` stamps and records; ``EventLog`` stores and answers
queries for ``/__livespec/stats``.
"""

from livespec.observability.collector import SyncCollector
from livespec.observability.events import (
    ClientConnected,
    ClientDisconnected,
    EdgesDropped,
    FileBroadcast,
    GraphLoaded,
    GraphSkipped,
    ServiceEvent,
    SyncEvent,
    TransportFault,
    now_ns,
)
from livespec.observability.log import EventLog

__all__ = [
    "ClientConnected",
    "ClientDisconnected",
    "EdgesDropped",
    "EventLog",
    "FileBroadcast",
    "GraphLoaded",
    "GraphSkipped",
    "ServiceEvent",
    "SyncCollector",
    "SyncEvent",
    "TransportFault",
    "now_ns",
]
