"""Bridge: the link between served pages, the transport and the host frame.

``client.BridgeClient`` speaks the transport protocol with reconnects;
``messages`` defines the cross-context frame bus.  The browser side lives in
``livespec/static/client.js``.
"""

from livespec.bridge.client import BridgeClient, ConnectionState
from livespec.bridge.messages import (
    GraphUpdated,
    GuestMessage,
    HighlightNode,
    HostChannel,
    HostMessage,
    NavigateTo,
    NodeClicked,
    check_origin,
    parse_guest_message,
    parse_host_message,
)

__all__ = [
    "BridgeClient",
    "ConnectionState",
    "GraphUpdated",
    "GuestMessage",
    "HighlightNode",
    "HostChannel",
    "HostMessage",
    "NavigateTo",
    "NodeClicked",
    "check_origin",
    "parse_guest_message",
    "parse_host_message",
]
