"""Reactive layer: push project changes to the host UI and connected clients.

The watcher hands classified changes to ``SyncPipeline``; the pipeline pushes
``HostEvents`` to the UI shell and broadcasts envelopes through the
``Broadcaster``.
"""

from livespec.reactive.broadcaster import Broadcaster, generate_client_id
from livespec.reactive.host import (
    FileChanged,
    GraphUpdate,
    HostEvent,
    HostEvents,
    ServerReady,
    ServerStatusChanged,
)
from livespec.reactive.pipeline import SyncPipeline
from livespec.reactive.protocol import (
    PROTOCOL_VERSION,
    SERVER_ID,
    ErrorCode,
    MessageType,
    WSMessage,
    decode_message,
    error_message,
    file_changed_message,
    graph_sync_message,
    welcome_message,
)

__all__ = [
    "PROTOCOL_VERSION",
    "SERVER_ID",
    "Broadcaster",
    "ErrorCode",
    "FileChanged",
    "GraphUpdate",
    "HostEvent",
    "HostEvents",
    "MessageType",
    "ServerReady",
    "ServerStatusChanged",
    "SyncPipeline",
    "WSMessage",
    "decode_message",
    "error_message",
    "file_changed_message",
    "generate_client_id",
    "graph_sync_message",
    "welcome_message",
]
