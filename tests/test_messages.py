"""Tests for livespec.bridge.messages: frame bus validation."""

from __future__ import annotations

from typing import Any

import pytest

from livespec._errors import BridgeMessageError
from livespec.bridge.messages import (
    GraphUpdated,
    HighlightNode,
    HostChannel,
    NavigateTo,
    NodeClicked,
    check_origin,
    parse_guest_message,
    parse_host_message,
)

from tests.conftest import graph_dict

HOST = "http://localhost:5173"


class TestCheckOrigin:
    def test_empty_list_allows_any(self) -> None:
        check_origin("http://anything", ())

    def test_listed_origin(self) -> None:
        check_origin(HOST, [HOST])

    def test_unlisted_origin(self) -> None:
        with pytest.raises(BridgeMessageError, match="untrusted origin"):
            check_origin("http://evil.example", [HOST])


class TestParseGuestMessage:
    """Page -> host."""

    def test_node_clicked(self) -> None:
        message = parse_guest_message({"type": "NODE_CLICKED", "nodeId": "login", "url": "/a"})
        assert message == NodeClicked(node_id="login", url="/a")

    def test_node_clicked_without_url(self) -> None:
        message = parse_guest_message({"type": "NODE_CLICKED", "nodeId": "login"})
        assert message == NodeClicked(node_id="login", url="")

    def test_graph_updated(self) -> None:
        message = parse_guest_message({"type": "GRAPH_UPDATED", "graph": graph_dict()})
        assert isinstance(message, GraphUpdated)
        assert message.graph.meta.name == "Checkout"

    @pytest.mark.parametrize(
        "data",
        [
            None,
            "NODE_CLICKED",
            {"nodeId": "x"},
            {"type": "NODE_CLICKED"},
            {"type": "NODE_CLICKED", "nodeId": ""},
            {"type": "GRAPH_UPDATED", "graph": {"meta": {}}},
            {"type": "NAVIGATE_TO", "url": "/x"},
        ],
    )
    def test_rejected(self, data: Any) -> None:
        with pytest.raises(BridgeMessageError):
            parse_guest_message(data)

    def test_origin_checked_first(self) -> None:
        with pytest.raises(BridgeMessageError, match="origin"):
            parse_guest_message(
                {"type": "NODE_CLICKED", "nodeId": "x"}, "http://evil.example", [HOST]
            )


class TestParseHostMessage:
    """Host -> page."""

    def test_navigate(self) -> None:
        assert parse_host_message({"type": "NAVIGATE_TO", "url": "/next.html"}) == NavigateTo(
            url="/next.html"
        )

    def test_navigate_reload_must_be_true(self) -> None:
        assert parse_host_message({"type": "NAVIGATE_TO", "url": "/", "reload": True}).reload
        assert not parse_host_message({"type": "NAVIGATE_TO", "url": "/", "reload": "yes"}).reload

    def test_highlight(self) -> None:
        message = parse_host_message({"type": "HIGHLIGHT_NODE", "nodeId": "pay"}, HOST, [HOST])
        assert message == HighlightNode(node_id="pay")

    def test_unknown_command(self) -> None:
        with pytest.raises(BridgeMessageError, match="unknown host command"):
            parse_host_message({"type": "NODE_CLICKED", "nodeId": "x"})

    def test_bad_origin(self) -> None:
        with pytest.raises(BridgeMessageError):
            parse_host_message({"type": "HIGHLIGHT_NODE", "nodeId": "x"}, "null", [HOST])


class TestWireShape:
    def test_to_dict(self) -> None:
        assert NodeClicked("a", "/p").to_dict() == {"type": "NODE_CLICKED", "nodeId": "a", "url": "/p"}
        assert NavigateTo("/p").to_dict() == {"type": "NAVIGATE_TO", "url": "/p"}
        assert NavigateTo("/p", reload=True).to_dict()["reload"] is True
        assert HighlightNode("a").to_dict() == {"type": "HIGHLIGHT_NODE", "nodeId": "a"}


class TestHostChannel:
    """Host end of the bus."""

    def _channel(self, **kwargs: Any) -> tuple[HostChannel, list[tuple[dict[str, Any], str]]]:
        posted: list[tuple[dict[str, Any], str]] = []
        return HostChannel(lambda data, target: posted.append((data, target)), **kwargs), posted

    def test_navigate_and_highlight(self) -> None:
        channel, posted = self._channel()
        channel.navigate("/next.html")
        channel.highlight("pay")
        assert posted == [
            ({"type": "NAVIGATE_TO", "url": "/next.html"}, "*"),
            ({"type": "HIGHLIGHT_NODE", "nodeId": "pay"}, "*"),
        ]

    def test_target_origin(self) -> None:
        channel, posted = self._channel(target_origin="http://127.0.0.1:3900")
        channel.navigate("/", reload=True)
        assert posted[0][1] == "http://127.0.0.1:3900"

    def test_receive_dispatches_by_class(self) -> None:
        channel, _ = self._channel()
        clicks: list[NodeClicked] = []
        graphs: list[GraphUpdated] = []
        channel.on(NodeClicked, clicks.append)
        channel.on(GraphUpdated, graphs.append)

        channel.receive({"type": "NODE_CLICKED", "nodeId": "login"})
        assert clicks == [NodeClicked("login")]
        assert graphs == []

    def test_unsubscribe(self) -> None:
        channel, _ = self._channel()
        clicks: list[NodeClicked] = []
        unsubscribe = channel.on(NodeClicked, clicks.append)
        unsubscribe()
        unsubscribe()
        channel.receive({"type": "NODE_CLICKED", "nodeId": "login"})
        assert clicks == []

    def test_rejected_message_dropped(self, capsys: pytest.CaptureFixture[str]) -> None:
        channel, _ = self._channel(allowed_origins=[HOST])
        clicks: list[NodeClicked] = []
        channel.on(NodeClicked, clicks.append)

        assert channel.receive({"type": "NODE_CLICKED", "nodeId": "x"}, "http://evil") is None
        assert clicks == []
        assert "dropped message" in capsys.readouterr().err

        assert channel.receive({"type": "NODE_CLICKED", "nodeId": "x"}, HOST) == NodeClicked("x")
        assert len(clicks) == 1
