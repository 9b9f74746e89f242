"""Broadcast transport: WebSocket fan-out to every connected client.

Guests (served pages running the bridge script) and host views connect to the
same server.  Each connection gets a generated client id and a WELCOME
envelope.  The server relays ``cursor:moved`` to everyone, answers
unparsable frames with an ERROR to the sender only, and exposes
``broadcast()`` for the sync pipeline.
"""

from __future__ import annotations

import secrets
import string
import sys
import time
from typing import TYPE_CHECKING

from websockets.asyncio.server import broadcast, serve
from websockets.exceptions import ConnectionClosed
from websockets.protocol import State

from livespec._errors import TransportError
from livespec.reactive.protocol import (
    ErrorCode,
    MessageType,
    cursor_moved_message,
    decode_message,
    error_message,
    welcome_message,
)

if TYPE_CHECKING:
    from websockets.asyncio.server import Server, ServerConnection

    from livespec._types import ClientID
    from livespec.observability.collector import SyncCollector
    from livespec.reactive.protocol import WSMessage

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_client_id(prefix: str = "client") -> ClientID:
    """Opaque client id: ``<prefix>_<epoch ms>_<9 base36 chars>``."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


class Broadcaster:
    """Manages transport connections and pushes envelopes to them.

    Single instance per session: ``start`` while running stops the previous
    server first.  All methods run on the event loop; no locking needed.

    Args:
        collector: Optional event collector for connects, disconnects and
            rejected messages.

    """

    def __init__(self, *, collector: SyncCollector | None = None) -> None:
        self._collector = collector
        self._server: Server | None = None
        self._clients: dict[ServerConnection, ClientID] = {}
        self._graph_id: str | None = None
        self._port: int = 0

    @property
    def is_running(self) -> bool:
        """Whether the listener is bound."""
        return self._server is not None

    @property
    def port(self) -> int:
        """Bound port (the real one when started on port 0), or 0 when stopped."""
        return self._port

    @property
    def graph_id(self) -> str | None:
        """Graph identifier announced in WELCOME."""
        return self._graph_id

    def set_graph_id(self, graph_id: str | None) -> None:
        """Change the graph identifier sent to subsequent connections."""
        self._graph_id = graph_id

    @property
    def client_ids(self) -> list[ClientID]:
        """Ids of currently registered clients."""
        return list(self._clients.values())

    @property
    def client_count(self) -> int:
        """Number of currently registered clients."""
        return len(self._clients)

    async def start(
        self,
        port: int,
        *,
        host: str = "127.0.0.1",
        graph_id: str | None = None,
    ) -> int:
        """Bind the transport server and return the bound port.

        Raises:
            TransportError: If the port can't be bound.

        """
        if self._server is not None:
            await self.stop()

        if graph_id is not None:
            self._graph_id = graph_id

        try:
            self._server = await serve(self._handle_connection, host, port)
        except OSError as exc:
            if self._collector is not None:
                self._collector.record_service("transport", "failed", str(exc))
            msg = f"cannot bind transport on {host}:{port}: {exc}"
            raise TransportError(msg) from exc

        self._port = next(iter(self._server.sockets)).getsockname()[1]
        if self._collector is not None:
            self._collector.record_service("transport", "started", f"port {self._port}")
        return self._port

    async def stop(self) -> None:
        """Close every connection and release the listening socket."""
        server = self._server
        if server is None:
            return

        self._server = None
        server.close()
        await server.wait_closed()
        self._clients.clear()
        if self._collector is not None:
            self._collector.record_service("transport", "stopped", f"port {self._port}")
        self._port = 0

    async def broadcast(self, message: WSMessage) -> int:
        """Queue one serialized envelope on every open connection.

        Writes don't wait on any client, so a slow reader never holds up
        the others.  Connections that aren't open are skipped.

        Returns:
            Number of open connections the envelope was queued on.

        """
        if self._server is None:
            return 0

        recipients = [conn for conn in self._clients if conn.state is State.OPEN]
        broadcast(recipients, message.encode())
        return len(recipients)

    # ------------------------------------------------------------------
    # Per-connection handling
    # ------------------------------------------------------------------

    async def _handle_connection(self, conn: ServerConnection) -> None:
        client_id = generate_client_id()
        self._clients[conn] = client_id
        remote = _format_remote(conn.remote_address)
        if self._collector is not None:
            self._collector.record_connect(client_id, remote)

        try:
            await conn.send(welcome_message(self._graph_id).encode())
            async for raw in conn:
                await self._handle_message(conn, client_id, raw)
        except ConnectionClosed:
            pass
        finally:
            self._clients.pop(conn, None)
            if self._collector is not None:
                self._collector.record_disconnect(client_id)

    async def _handle_message(
        self, conn: ServerConnection, client_id: ClientID, raw: str | bytes
    ) -> None:
        try:
            message = decode_message(raw)
        except ValueError as exc:
            print(f"  Transport: bad message from {client_id}: {exc}", file=sys.stderr)
            if self._collector is not None:
                self._collector.record_fault(client_id, ErrorCode.INVALID_MESSAGE, str(exc))
            await conn.send(
                error_message(ErrorCode.INVALID_MESSAGE, "Failed to parse message").encode()
            )
            return

        if message.type == MessageType.HELLO:
            if self._collector is not None:
                self._collector.record_service("transport", "info", f"hello from {client_id}")
        elif message.type == MessageType.CURSOR_MOVED:
            # Sender receives its own relay too.
            await self.broadcast(cursor_moved_message(message.payload))
        else:
            if self._collector is not None:
                self._collector.record_fault(
                    client_id, "UNKNOWN_TYPE", f"ignored message type {message.type!r}"
                )


def _format_remote(address: object) -> str:
    if isinstance(address, tuple) and len(address) >= 2:
        return f"{address[0]}:{address[1]}"
    return str(address or "")
