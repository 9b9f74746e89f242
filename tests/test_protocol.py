"""Tests for livespec.reactive.protocol: envelope encoding and builders."""

from __future__ import annotations

import json
import re
from datetime import UTC, datetime

import pytest

from livespec.graph.model import SpecGraphData
from livespec.reactive.protocol import (
    PROTOCOL_VERSION,
    SERVER_ID,
    ErrorCode,
    MessageType,
    WSMessage,
    cursor_moved_message,
    decode_message,
    error_message,
    file_changed_message,
    graph_sync_message,
    iso_timestamp,
    welcome_message,
)

from tests.conftest import graph_dict

ISO_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


class TestEnvelope:
    def test_iso_timestamp_format(self) -> None:
        assert ISO_RE.match(iso_timestamp())
        moment = datetime(2024, 5, 1, 12, 30, 45, 123456, tzinfo=UTC)
        assert iso_timestamp(moment) == "2024-05-01T12:30:45.123Z"

    def test_create_stamps_time(self) -> None:
        message = WSMessage.create(MessageType.HELLO, {"clientType": "guest"})
        assert message.type is MessageType.HELLO
        assert ISO_RE.match(message.timestamp)

    def test_encode_is_compact_json(self) -> None:
        message = WSMessage(type=MessageType.HELLO, timestamp="t", payload={"a": 1})
        assert message.encode() == '{"type":"hello","timestamp":"t","payload":{"a":1}}'


class TestDecode:
    """Parsing incoming frames."""

    def test_known_type(self) -> None:
        message = decode_message('{"type":"cursor:moved","timestamp":"t","payload":{"x":1}}')
        assert message.type is MessageType.CURSOR_MOVED
        assert message.timestamp == "t"
        assert message.payload == {"x": 1}

    def test_bytes_frame(self) -> None:
        assert decode_message(b'{"type":"hello"}').type is MessageType.HELLO

    def test_unknown_type_kept_as_string(self) -> None:
        message = decode_message('{"type":"custom:thing","payload":null}')
        assert message.type == "custom:thing"
        assert not isinstance(message.type, MessageType)

    def test_missing_timestamp_filled(self) -> None:
        assert ISO_RE.match(decode_message('{"type":"hello"}').timestamp)

    @pytest.mark.parametrize("raw", ["not json", "[1, 2]", '"hello"', '{"payload": {}}', '{"type": 3}'])
    def test_invalid_frames(self, raw: str) -> None:
        with pytest.raises(ValueError):
            decode_message(raw)


class TestBuilders:
    def test_welcome_without_graph(self) -> None:
        payload = welcome_message().payload
        assert payload == {"serverId": SERVER_ID, "version": PROTOCOL_VERSION}
        assert payload == {"serverId": "livespec_server", "version": "1.0.0"}

    def test_welcome_with_graph(self) -> None:
        assert welcome_message("Checkout").payload["graphId"] == "Checkout"

    def test_error(self) -> None:
        message = error_message(ErrorCode.INVALID_MESSAGE, "Failed to parse message")
        assert message.type is MessageType.ERROR
        assert message.payload == {"code": "INVALID_MESSAGE", "message": "Failed to parse message"}

    def test_error_details(self) -> None:
        message = error_message("X", "bad", details={"line": 1})
        assert message.payload["details"] == {"line": 1}

    def test_graph_sync(self) -> None:
        graph = SpecGraphData.from_dict(graph_dict())
        message = graph_sync_message(graph)
        decoded = json.loads(message.encode())
        assert decoded["type"] == "graph:sync"
        assert decoded["payload"] == {"graph": graph_dict(), "fullSync": True}

    def test_file_changed(self) -> None:
        message = file_changed_message("/p/index.html")
        assert message.payload == {"filePath": "/p/index.html", "content": ""}

    def test_cursor_payload_verbatim(self) -> None:
        payload = {"x": 10, "y": 20, "user": "a"}
        assert cursor_moved_message(payload).payload is payload
