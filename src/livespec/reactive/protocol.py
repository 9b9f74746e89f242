"""Transport wire protocol: the ``{type, timestamp, payload}`` envelope.

Every frame on the broadcast transport is one JSON-encoded ``WSMessage``.
The set of ``type`` values is closed (``MessageType``); payload builders
below produce the shapes each type carries.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from livespec._types import JSONObject
    from livespec.graph.model import SpecGraphData

SERVER_ID = "livespec_server"
PROTOCOL_VERSION = "1.0.0"


class MessageType(StrEnum):
    """Closed set of envelope types."""

    GRAPH_SYNC = "graph:sync"
    FILE_CHANGED = "file:changed"
    NODE_CREATED = "node:created"
    NODE_UPDATED = "node:updated"
    NODE_DELETED = "node:deleted"
    WELCOME = "welcome"
    HELLO = "hello"
    CURSOR_MOVED = "cursor:moved"
    ERROR = "error"


class ErrorCode(StrEnum):
    """``code`` values used in ERROR payloads."""

    INVALID_MESSAGE = "INVALID_MESSAGE"


def iso_timestamp(moment: datetime | None = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, ``Z`` suffixed."""
    moment = moment or datetime.now(UTC)
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True, slots=True)
class WSMessage:
    """Transport envelope.

    Attributes:
        type: Envelope type.  Incoming messages may carry a type outside
            ``MessageType``; it is kept as a plain string so the dispatcher
            can log and ignore it.
        timestamp: ISO-8601 creation time.
        payload: Type-specific payload.

    """

    type: MessageType | str
    timestamp: str
    payload: Any = None

    @classmethod
    def create(cls, type: MessageType, payload: Any = None) -> WSMessage:
        """Build an envelope stamped with the current time."""
        return cls(type=type, timestamp=iso_timestamp(), payload=payload)

    def to_dict(self) -> JSONObject:
        return {
            "type": str(self.type),
            "timestamp": self.timestamp,
            "payload": self.payload,
        }

    def encode(self) -> str:
        """Serialize to a single JSON text frame."""
        return json.dumps(self.to_dict(), separators=(",", ":"))


def decode_message(raw: str | bytes) -> WSMessage:
    """Parse one frame into an envelope.

    Known types become ``MessageType`` members; unknown ones stay strings.

    Raises:
        ValueError: If the frame isn't JSON or isn't an object with a string
            ``type``.  (``json.JSONDecodeError`` is a ValueError.)

    """
    data = json.loads(raw)
    if not isinstance(data, dict):
        msg = "message must be a JSON object"
        raise ValueError(msg)
    raw_type = data.get("type")
    if not isinstance(raw_type, str):
        msg = "message is missing a string 'type'"
        raise ValueError(msg)
    try:
        msg_type: MessageType | str = MessageType(raw_type)
    except ValueError:
        msg_type = raw_type
    timestamp = data.get("timestamp")
    return WSMessage(
        type=msg_type,
        timestamp=timestamp if isinstance(timestamp, str) else iso_timestamp(),
        payload=data.get("payload"),
    )


# ---------------------------------------------------------------------------
# Payload builders
# ---------------------------------------------------------------------------


def welcome_message(graph_id: str | None = None) -> WSMessage:
    """WELCOME sent to every new connection; ``graphId`` omitted when unset."""
    payload: JSONObject = {"serverId": SERVER_ID, "version": PROTOCOL_VERSION}
    if graph_id is not None:
        payload["graphId"] = graph_id
    return WSMessage.create(MessageType.WELCOME, payload)


def error_message(code: str, message: str, details: Any = None) -> WSMessage:
    """ERROR reply; ``details`` omitted when None."""
    payload: JSONObject = {"code": code, "message": message}
    if details is not None:
        payload["details"] = details
    return WSMessage.create(MessageType.ERROR, payload)


def graph_sync_message(graph: SpecGraphData, *, full_sync: bool = True) -> WSMessage:
    """GRAPH_SYNC carrying the whole graph in its on-disk shape."""
    return WSMessage.create(
        MessageType.GRAPH_SYNC, {"graph": graph.to_dict(), "fullSync": full_sync}
    )


def file_changed_message(file_path: str, content: str = "") -> WSMessage:
    """FILE_CHANGED notice; guests only need the path to reload."""
    return WSMessage.create(
        MessageType.FILE_CHANGED, {"filePath": file_path, "content": content}
    )


def cursor_moved_message(payload: Any) -> WSMessage:
    """CURSOR_MOVED relay with the sender's payload copied verbatim."""
    return WSMessage.create(MessageType.CURSOR_MOVED, payload)
