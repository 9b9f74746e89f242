"""Cross-context messages between the host frame and served pages.

Two closed unions, one per direction:

- guest -> host: ``NodeClicked``, ``GraphUpdated``
- host -> guest: ``NavigateTo``, ``HighlightNode``

Every inbound message is checked for origin and shape at the boundary.
``HostChannel`` is the host's end of the bus.
"""

from __future__ import annotations

import sys
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

from livespec._errors import BridgeMessageError, GraphError
from livespec.graph.model import SpecGraphData

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from livespec._types import JSONObject


# ---------------------------------------------------------------------------
# Guest -> host
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class NodeClicked:
    """An element carrying ``data-node-id`` was clicked in the page."""

    TYPE: ClassVar[str] = "NODE_CLICKED"

    node_id: str
    url: str = ""

    def to_dict(self) -> JSONObject:
        return {"type": self.TYPE, "nodeId": self.node_id, "url": self.url}


@dataclass(frozen=True, slots=True)
class GraphUpdated:
    """A ``graph:sync`` the page received, relayed to the host."""

    TYPE: ClassVar[str] = "GRAPH_UPDATED"

    graph: SpecGraphData

    def to_dict(self) -> JSONObject:
        return {"type": self.TYPE, "graph": self.graph.to_dict()}


# ---------------------------------------------------------------------------
# Host -> guest
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class NavigateTo:
    """Point the page at ``url``."""

    TYPE: ClassVar[str] = "NAVIGATE_TO"

    url: str
    reload: bool = False

    def to_dict(self) -> JSONObject:
        data: JSONObject = {"type": self.TYPE, "url": self.url}
        if self.reload:
            data["reload"] = True
        return data


@dataclass(frozen=True, slots=True)
class HighlightNode:
    """Outline the element for ``node_id``; clears any previous highlight."""

    TYPE: ClassVar[str] = "HIGHLIGHT_NODE"

    node_id: str

    def to_dict(self) -> JSONObject:
        return {"type": self.TYPE, "nodeId": self.node_id}


type GuestMessage = NodeClicked | GraphUpdated
type HostMessage = NavigateTo | HighlightNode


# ---------------------------------------------------------------------------
# Boundary validation
# ---------------------------------------------------------------------------


def check_origin(origin: str, allowed_origins: Iterable[str]) -> None:
    """Reject ``origin`` unless it is listed.  An empty list allows any origin.

    Raises:
        BridgeMessageError: If the origin isn't allowed.

    """
    allowed = tuple(allowed_origins)
    if allowed and origin not in allowed:
        msg = f"message from untrusted origin {origin!r}"
        raise BridgeMessageError(msg)


def _message_type(data: object) -> tuple[Mapping[str, Any], str]:
    if not isinstance(data, Mapping):
        msg = f"message must be an object, got {type(data).__name__}"
        raise BridgeMessageError(msg)
    msg_type = data.get("type")
    if not isinstance(msg_type, str) or not msg_type:
        msg = "message is missing a string 'type'"
        raise BridgeMessageError(msg)
    return data, msg_type


def _required_str(data: Mapping[str, Any], key: str, msg_type: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        msg = f"{msg_type} requires a non-empty string {key!r}"
        raise BridgeMessageError(msg)
    return value


def parse_guest_message(
    data: object, origin: str = "", allowed_origins: Iterable[str] = ()
) -> GuestMessage:
    """Validate a page -> host message.

    Raises:
        BridgeMessageError: On an untrusted origin, an unknown type or a bad shape.

    """
    check_origin(origin, allowed_origins)
    mapping, msg_type = _message_type(data)

    if msg_type == NodeClicked.TYPE:
        url = mapping.get("url", "")
        return NodeClicked(
            node_id=_required_str(mapping, "nodeId", msg_type),
            url=url if isinstance(url, str) else "",
        )
    if msg_type == GraphUpdated.TYPE:
        try:
            graph = SpecGraphData.from_dict(mapping.get("graph"))
        except GraphError as exc:
            msg = f"{msg_type} carries an invalid graph: {exc}"
            raise BridgeMessageError(msg) from exc
        return GraphUpdated(graph=graph)

    msg = f"unknown guest message type {msg_type!r}"
    raise BridgeMessageError(msg)


def parse_host_message(
    data: object, origin: str = "", allowed_origins: Iterable[str] = ()
) -> HostMessage:
    """Validate a host -> page command.

    Raises:
        BridgeMessageError: On an untrusted origin, an unknown type or a bad shape.

    """
    check_origin(origin, allowed_origins)
    mapping, msg_type = _message_type(data)

    if msg_type == NavigateTo.TYPE:
        return NavigateTo(
            url=_required_str(mapping, "url", msg_type),
            reload=mapping.get("reload") is True,
        )
    if msg_type == HighlightNode.TYPE:
        return HighlightNode(node_id=_required_str(mapping, "nodeId", msg_type))

    msg = f"unknown host command type {msg_type!r}"
    raise BridgeMessageError(msg)


# ---------------------------------------------------------------------------
# Host end of the bus
# ---------------------------------------------------------------------------


class HostChannel:
    """Host side of the frame bus.

    Outbound commands go through ``post(payload, target_origin)``, which the
    UI shell wires to the embedded frame.  Inbound data is validated with
    ``parse_guest_message`` and dispatched to handlers by message class.
    Rejected messages are reported and dropped.

    Args:
        post: Delivers a serialized command to the guest frame.
        allowed_origins: Origins accepted for inbound messages.
        target_origin: Origin commands are addressed to.

    """

    def __init__(
        self,
        post: Callable[[JSONObject, str], None],
        *,
        allowed_origins: Iterable[str] = (),
        target_origin: str = "*",
    ) -> None:
        self._post = post
        self._allowed_origins = tuple(allowed_origins)
        self._target_origin = target_origin
        self._handlers: dict[type, list[Callable[[Any], None]]] = {}

    def on[M: GuestMessage](
        self, message_type: type[M], handler: Callable[[M], None]
    ) -> Callable[[], None]:
        """Register ``handler`` for one guest message class; returns an unsubscribe."""
        self._handlers.setdefault(message_type, []).append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(message_type, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def receive(self, data: object, origin: str = "") -> GuestMessage | None:
        """Validate and dispatch one inbound message; None if it was rejected."""
        try:
            message = parse_guest_message(data, origin, self._allowed_origins)
        except BridgeMessageError as exc:
            print(f"  Bridge: dropped message: {exc}", file=sys.stderr)
            return None
        for handler in list(self._handlers.get(type(message), [])):
            handler(message)
        return message

    def send(self, command: HostMessage) -> None:
        self._post(command.to_dict(), self._target_origin)

    def navigate(self, url: str, *, reload: bool = False) -> None:
        self.send(NavigateTo(url=url, reload=reload))

    def highlight(self, node_id: str) -> None:
        self.send(HighlightNode(node_id=node_id))
