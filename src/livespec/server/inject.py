"""Bridge script injection for served HTML.

Every ``text/html`` response from the content server gets one script tag
that loads the bridge client.  The tag goes right before the last
``</body>`` (any case), or at the end when the document has no body
close tag.  Documents that already reference the bridge are left alone.
"""

from __future__ import annotations

import html
import re
from typing import TYPE_CHECKING

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from livespec.config import DEFAULT_RECONNECT_DELAY_MS

if TYPE_CHECKING:
    from collections.abc import Iterable

    from starlette.middleware.base import RequestResponseEndpoint
    from starlette.requests import Request
    from starlette.types import ASGIApp

BRIDGE_SCRIPT_URL = "/__livespec/client.js"

_BODY_CLOSE = re.compile(r"</body\s*>", re.IGNORECASE)

# Statuses that must not carry a body.
_NO_BODY_STATUSES = frozenset({204, 304})


def bridge_tag(
    ws_port: int,
    host_origins: Iterable[str] = (),
    *,
    reconnect_delay_ms: int = DEFAULT_RECONNECT_DELAY_MS,
    max_reconnect_attempts: int = 0,
) -> str:
    """The ``<script>`` element that loads the bridge client.

    The data attributes carry the transport port and reconnect policy;
    ``client.js`` reads them from ``document.currentScript``.
    """
    attrs = (
        f' data-ws-port="{int(ws_port)}"'
        f' data-reconnect-delay="{int(reconnect_delay_ms)}"'
        f' data-max-reconnect-attempts="{int(max_reconnect_attempts)}"'
    )
    origins = " ".join(host_origins)
    if origins:
        attrs += f' data-host-origins="{html.escape(origins, quote=True)}"'
    return f'<script src="{BRIDGE_SCRIPT_URL}"{attrs}></script>'


def inject_bridge(document: str, tag: str) -> str:
    """Insert ``tag`` before the last ``</body>``, or append it.

    Idempotent: a document that already references the bridge URL is
    returned unchanged.
    """
    if BRIDGE_SCRIPT_URL in document:
        return document

    last = None
    for last in _BODY_CLOSE.finditer(document):
        pass
    if last is None:
        return document + tag
    return document[: last.start()] + tag + document[last.start() :]


def _wants_injection(request: Request, response: Response) -> bool:
    if request.method == "HEAD":
        return False
    if response.status_code in _NO_BODY_STATUSES:
        return False
    if "content-encoding" in response.headers:
        return False
    return "text/html" in response.headers.get("content-type", "").lower()


class BridgeInjectionMiddleware(BaseHTTPMiddleware):
    """Starlette middleware that rewrites HTML responses to load the bridge.

    Non-HTML responses stream through untouched.  HTML bodies are buffered,
    rewritten, and re-sent with a recomputed ``content-length``.

    Args:
        app: Wrapped ASGI app.
        ws_port: Transport port announced to the bridge client.
        host_origins: Origins the bridge accepts host commands from.
        reconnect_delay_ms: Reconnect delay announced to page clients.
        max_reconnect_attempts: Reconnect bound announced to page clients.

    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        ws_port: int,
        host_origins: Iterable[str] = (),
        reconnect_delay_ms: int = DEFAULT_RECONNECT_DELAY_MS,
        max_reconnect_attempts: int = 0,
    ) -> None:
        super().__init__(app)
        self._tag = bridge_tag(
            ws_port,
            host_origins,
            reconnect_delay_ms=reconnect_delay_ms,
            max_reconnect_attempts=max_reconnect_attempts,
        )

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        if not _wants_injection(request, response):
            return response

        chunks = [
            chunk if isinstance(chunk, bytes) else chunk.encode("utf-8")
            async for chunk in response.body_iterator  # type: ignore[attr-defined]
        ]
        body = b"".join(chunks)

        headers = {
            key: value
            for key, value in response.headers.items()
            if key.lower() != "content-length"
        }
        try:
            document = body.decode("utf-8")
        except UnicodeDecodeError:
            return Response(body, status_code=response.status_code, headers=headers)

        rewritten = inject_bridge(document, self._tag).encode("utf-8")
        return Response(rewritten, status_code=response.status_code, headers=headers)
