"""Reconnecting transport client.

The same connection state machine the browser bridge runs, for Python
participants (``livespec tail``, host-side tooling, tests)::

    DISCONNECTED -> CONNECTING -> CONNECTED -> DISCONNECTED (retry)
                                            -> DISCONNECTED (manual, terminal)

A close that wasn't requested schedules one reconnect after
``reconnect_delay`` seconds.  ``max_reconnect_attempts == 0`` retries
forever.  ``disconnect()`` is one-way: once called, nothing reconnects.
"""

from __future__ import annotations

import asyncio
import sys
from enum import StrEnum
from typing import TYPE_CHECKING

from websockets.asyncio.client import connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from livespec._errors import GraphError
from livespec.bridge.messages import GraphUpdated
from livespec.graph.model import SpecGraphData
from livespec.reactive.broadcaster import generate_client_id
from livespec.reactive.protocol import PROTOCOL_VERSION, MessageType, WSMessage, decode_message

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from websockets.asyncio.client import ClientConnection

    type Connector = Callable[[str], Awaitable[ClientConnection]]
    type Sleeper = Callable[[float], Awaitable[None]]


class ConnectionState(StrEnum):
    """Bridge connection states."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


async def _default_connect(url: str) -> ClientConnection:
    return await connect(url)


class BridgeClient:
    """Transport client with fixed-delay reconnects.

    Args:
        url: Transport address, e.g. ``ws://127.0.0.1:3899``.
        client_type: Announced in HELLO (``"guest"`` for served pages).
        page_url: Announced in HELLO as ``url``.
        reconnect_delay: Seconds to wait before reconnecting.
        max_reconnect_attempts: Consecutive failed reconnects allowed;
            0 means unlimited.
        on_reload: Called on ``file:changed`` with the changed path.
        on_graph_update: Called on ``graph:sync`` with the relayed graph.
        on_message: Called with every other envelope.
        connector: Opens a connection; defaults to ``websockets`` connect.
        sleep: Awaitable delay; defaults to ``asyncio.sleep``.

    """

    def __init__(
        self,
        url: str,
        *,
        client_type: str = "guest",
        page_url: str = "",
        reconnect_delay: float = 2.0,
        max_reconnect_attempts: int = 0,
        on_reload: Callable[[str], None] | None = None,
        on_graph_update: Callable[[GraphUpdated], None] | None = None,
        on_message: Callable[[WSMessage], None] | None = None,
        connector: Connector | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self.url = url
        self.client_type = client_type
        self.page_url = page_url
        self.reconnect_delay = reconnect_delay
        self.max_reconnect_attempts = max_reconnect_attempts
        self.client_id = generate_client_id(client_type)

        self._on_reload = on_reload
        self._on_graph_update = on_graph_update
        self._on_message = on_message
        self._connector = connector or _default_connect
        self._sleep = sleep

        self._state = ConnectionState.DISCONNECTED
        self._conn: ClientConnection | None = None
        self._reconnect_attempts = 0
        self._manual_close = False

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def reconnect_attempts(self) -> int:
        """Reconnects scheduled since the last successful open."""
        return self._reconnect_attempts

    @property
    def is_manually_closed(self) -> bool:
        return self._manual_close

    async def run(self) -> None:
        """Connect and keep reconnecting until disconnected or out of attempts."""
        while not self._manual_close:
            await self._connect_once()
            if not await self._schedule_reconnect():
                break
        self._state = ConnectionState.DISCONNECTED

    async def disconnect(self) -> None:
        """Close for good.  Suppresses every later reconnect."""
        self._manual_close = True
        conn = self._conn
        if conn is not None:
            await conn.close()

    async def send(self, message: WSMessage) -> bool:
        """Send one envelope; False when not connected."""
        conn = self._conn
        if conn is None or self._state is not ConnectionState.CONNECTED:
            return False
        try:
            await conn.send(message.encode())
        except ConnectionClosed:
            return False
        return True

    def hello_message(self) -> WSMessage:
        return WSMessage.create(
            MessageType.HELLO,
            {
                "clientId": self.client_id,
                "clientType": self.client_type,
                "url": self.page_url,
                "version": PROTOCOL_VERSION,
            },
        )

    def handle_frame(self, raw: str | bytes) -> WSMessage | None:
        """Dispatch one received frame.  Malformed frames are logged and dropped."""
        try:
            message = decode_message(raw)
        except ValueError as exc:
            print(f"  Bridge: ignoring malformed message: {exc}", file=sys.stderr)
            return None

        if message.type == MessageType.FILE_CHANGED:
            payload = message.payload if isinstance(message.payload, dict) else {}
            if self._on_reload is not None:
                self._on_reload(str(payload.get("filePath", "")))
        elif message.type == MessageType.GRAPH_SYNC:
            self._relay_graph(message)
        elif self._on_message is not None:
            self._on_message(message)
        return message

    # ------------------------------------------------------------------

    async def _connect_once(self) -> None:
        self._state = ConnectionState.CONNECTING
        try:
            conn = await self._connector(self.url)
        except (OSError, TimeoutError, WebSocketException) as exc:
            print(f"  Bridge: cannot connect to {self.url}: {exc}", file=sys.stderr)
            self._state = ConnectionState.DISCONNECTED
            return

        self._conn = conn
        self._state = ConnectionState.CONNECTED
        self._reconnect_attempts = 0
        try:
            await conn.send(self.hello_message().encode())
            async for raw in conn:
                self.handle_frame(raw)
        except ConnectionClosed:
            pass
        finally:
            self._conn = None
            self._state = ConnectionState.DISCONNECTED

    async def _schedule_reconnect(self) -> bool:
        if self._manual_close:
            return False
        if (
            self.max_reconnect_attempts > 0
            and self._reconnect_attempts >= self.max_reconnect_attempts
        ):
            print("  Bridge: max reconnection attempts reached", file=sys.stderr)
            return False

        self._reconnect_attempts += 1
        await self._sleep(self.reconnect_delay)
        return not self._manual_close

    def _relay_graph(self, message: WSMessage) -> None:
        payload = message.payload if isinstance(message.payload, dict) else {}
        try:
            graph = SpecGraphData.from_dict(payload.get("graph"))
        except GraphError as exc:
            print(f"  Bridge: ignoring graph sync: {exc}", file=sys.stderr)
            return
        if self._on_graph_update is not None:
            self._on_graph_update(GraphUpdated(graph=graph))
