"""Content server: static project files with the bridge script injected.

``create_app`` builds the Starlette application; ``ContentServer`` owns one
uvicorn server running it on the session's event loop.

Route order: ``/health`` and the ``/__livespec/*`` routes first, then static
files from the resolved root.  The injection middleware wraps everything,
so it sees the final body of every response.
"""

from __future__ import annotations

import asyncio
import contextlib
import socket
import sys
from dataclasses import asdict
from typing import TYPE_CHECKING, Any

import uvicorn
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.responses import JSONResponse, PlainTextResponse
from starlette.routing import Mount, Route
from starlette.staticfiles import StaticFiles

from livespec._errors import ServerError
from livespec.reactive.protocol import iso_timestamp
from livespec.server.assets import resolve_bridge_script, resolve_static_root
from livespec.server.inject import BRIDGE_SCRIPT_URL, BridgeInjectionMiddleware

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from starlette.requests import Request
    from starlette.responses import Response

    from livespec.config import LiveSpecConfig
    from livespec.observability.collector import SyncCollector

STATS_ENDPOINT = "/__livespec/stats"
HEALTH_ENDPOINT = "/health"

_JS_MEDIA_TYPE = "application/javascript; charset=utf-8"


def create_app(
    config: LiveSpecConfig,
    *,
    ws_port: int | None = None,
    collector: SyncCollector | None = None,
) -> Starlette:
    """Build the content server application for one project root.

    Args:
        config: Project configuration; ``root`` is reported by ``/health``.
        ws_port: Transport port announced in the injected tag.  Defaults
            to ``config.ws_port``.
        collector: Event collector backing ``/__livespec/stats``.

    """
    static_root = resolve_static_root(config)
    announced_port = ws_port if ws_port is not None else config.ws_port

    async def health(request: Request) -> Response:
        return JSONResponse({
            "status": "ok",
            "timestamp": iso_timestamp(),
            "rootPath": str(config.root),
        })

    async def bridge_script(request: Request) -> Response:
        path = resolve_bridge_script(config)
        if path is None:
            print("  Bridge script not found", file=sys.stderr)
            return PlainTextResponse(
                "// Bridge script not found", status_code=404, media_type=_JS_MEDIA_TYPE
            )
        try:
            script = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            print(f"  Failed to read bridge script {path}: {exc}", file=sys.stderr)
            return PlainTextResponse(
                "// Failed to load bridge script", status_code=500, media_type=_JS_MEDIA_TYPE
            )
        return PlainTextResponse(script, media_type=_JS_MEDIA_TYPE)

    async def stats(request: Request) -> Response:
        if collector is None:
            return JSONResponse({"event_log": None, "recent": []})
        return JSONResponse({
            "event_log": collector.log.stats(),
            "recent": [_event_to_dict(event) for event in collector.log.recent(20)],
        })

    routes = [
        Route(HEALTH_ENDPOINT, health, methods=["GET"]),
        Route(BRIDGE_SCRIPT_URL, bridge_script, methods=["GET"]),
        Route(STATS_ENDPOINT, stats, methods=["GET"]),
        Mount("/", app=StaticFiles(directory=static_root, html=True, check_dir=False)),
    ]
    middleware = [
        Middleware(
            BridgeInjectionMiddleware,
            ws_port=announced_port,
            host_origins=config.host_origins,
            reconnect_delay_ms=config.reconnect_delay_ms,
            max_reconnect_attempts=config.max_reconnect_attempts,
        ),
    ]
    return Starlette(routes=routes, middleware=middleware)


def _event_to_dict(event: object) -> dict[str, Any]:
    data = asdict(event)  # type: ignore[call-overload]
    data["event"] = type(event).__name__
    return data


class _EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the host process."""

    def install_signal_handlers(self) -> None:
        return None

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


def _bind(host: str, port: int) -> socket.socket:
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    return socket.create_server((host, port), family=family)


class ContentServer:
    """Owns the HTTP listener for the current project.

    ``start`` resolves only once uvicorn is accepting connections and raises
    ``ServerError`` on bind failure.  ``stop`` is a no-op when stopped and
    returns after the listening socket is released.

    """

    def __init__(self, *, collector: SyncCollector | None = None) -> None:
        self._collector = collector
        self._server: _EmbeddedServer | None = None
        self._task: asyncio.Task[None] | None = None
        self._socket: socket.socket | None = None
        self._root: Path | None = None
        self._port = 0

    @property
    def is_running(self) -> bool:
        return self._server is not None

    @property
    def port(self) -> int:
        """Bound port, or 0 when stopped."""
        return self._port

    @property
    def root(self) -> Path | None:
        """Project root being served, or None when stopped."""
        return self._root

    async def start(
        self,
        config: LiveSpecConfig,
        *,
        port: int | None = None,
        ws_port: int | None = None,
    ) -> int:
        """Serve ``config.root`` on ``port`` (default ``config.http_port``).

        Returns:
            The bound port (the real one when ``port`` is 0).

        Raises:
            ServerError: If the port can't be bound or the server fails to start.

        """
        if self._server is not None:
            await self.stop()

        bind_port = config.http_port if port is None else port
        try:
            sock = _bind(config.host, bind_port)
        except OSError as exc:
            if self._collector is not None:
                self._collector.record_service("content", "failed", str(exc))
            msg = f"cannot bind content server on {config.host}:{bind_port}: {exc}"
            raise ServerError(msg) from exc

        app = create_app(config, ws_port=ws_port, collector=self._collector)
        server = _EmbeddedServer(
            uvicorn.Config(app, log_level="warning", access_log=False, lifespan="off")
        )
        task = asyncio.create_task(server.serve(sockets=[sock]), name="livespec-content")

        while not server.started:
            if task.done():
                sock.close()
                exc = task.exception() if not task.cancelled() else None
                msg = f"content server failed to start: {exc or 'cancelled'}"
                if self._collector is not None:
                    self._collector.record_service("content", "failed", msg)
                raise ServerError(msg) from exc
            await asyncio.sleep(0.01)

        self._server = server
        self._task = task
        self._socket = sock
        self._root = config.root
        self._port = sock.getsockname()[1]
        print(f"  Serving {resolve_static_root(config)} on port {self._port}", file=sys.stderr)
        if self._collector is not None:
            self._collector.record_service("content", "started", f"port {self._port}")
        return self._port

    async def stop(self) -> None:
        """Shut the server down and release the port."""
        server, task = self._server, self._task
        if server is None or task is None:
            return

        self._server = None
        self._task = None
        server.should_exit = True
        try:
            await asyncio.wait_for(task, timeout=5.0)
        except TimeoutError:
            server.force_exit = True
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        finally:
            if self._socket is not None:
                self._socket.close()
                self._socket = None

        if self._collector is not None:
            self._collector.record_service("content", "stopped", f"port {self._port}")
        self._root = None
        self._port = 0
