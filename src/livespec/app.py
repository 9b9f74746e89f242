"""LiveSpec entry points: ``dev`` and ``tail``.

``dev`` opens a project, starts both servers and runs until interrupted.
``tail`` connects to a running transport and prints its traffic.
"""

from __future__ import annotations

import asyncio
import json
import sys
import time
from pathlib import Path
from typing import TYPE_CHECKING

from livespec._errors import ConfigError, ServerError
from livespec.config_loader import load_config

if TYPE_CHECKING:
    from livespec.bridge.client import BridgeClient
    from livespec.bridge.messages import GraphUpdated
    from livespec.config import LiveSpecConfig
    from livespec.reactive.protocol import WSMessage
    from livespec.session import ProjectSession


def _wire_console(session: ProjectSession) -> None:
    """Echo host events to stderr while ``dev`` runs."""
    from livespec.reactive.host import FileChanged, GraphUpdate

    def on_graph(event: GraphUpdate) -> None:
        graph = event.graph
        print(
            f"  Graph: {graph.meta.name} ({len(graph.nodes)} nodes, {len(graph.edges)} edges)",
            file=sys.stderr,
        )

    def on_file(event: FileChanged) -> None:
        print(f"  Changed: {event.file_path}", file=sys.stderr)

    session.host_events.subscribe(GraphUpdate, on_graph)
    session.host_events.subscribe(FileChanged, on_file)


async def _run_dev(root: Path, overrides: dict[str, object]) -> None:
    from livespec.banner import print_banner
    from livespec.session import ProjectSession

    t0 = time.perf_counter()
    session = ProjectSession(**overrides)
    _wire_console(session)

    opened = await session.open_project(root)
    if opened.canceled or session.config is None:
        msg = f"cannot open project at {root}"
        raise ConfigError(msg)

    try:
        started = await session.start_server()
        if not started.success:
            msg = "transport or content server failed to start"
            raise ServerError(msg)

        load_ms = (time.perf_counter() - t0) * 1000
        print_banner(
            session.config,
            mode="dev",
            ws_port=started.ws_port,
            http_port=started.http_port,
            graph=session.state.graph,
            load_ms=load_ms,
        )
        await asyncio.Event().wait()
    finally:
        await session.close()


def dev(root: str | Path = ".", **kwargs: object) -> None:
    """Open ``root`` and serve it live until interrupted.

    Args:
        root: Project root (the folder holding the prototype), or its
            ``.LiveSpec`` subdirectory.
        **kwargs: Override LiveSpecConfig fields.

    """
    try:
        asyncio.run(_run_dev(Path(root), kwargs))
    except KeyboardInterrupt:
        print("\n  Stopped.", file=sys.stderr)


def _print_envelope(message: WSMessage) -> None:
    print(message.encode(), flush=True)


def _tail_client(config: LiveSpecConfig) -> BridgeClient:
    """A ``tail`` client for the transport ``config`` points at."""
    from livespec.bridge.client import BridgeClient

    def on_reload(file_path: str) -> None:
        print(json.dumps({"type": "file:changed", "filePath": file_path}), flush=True)

    def on_graph(event: GraphUpdated) -> None:
        graph = event.graph
        print(
            json.dumps({
                "type": "graph:sync",
                "name": graph.meta.name,
                "nodes": len(graph.nodes),
                "edges": len(graph.edges),
            }),
            flush=True,
        )

    url = f"ws://{config.host}:{config.ws_port}"
    return BridgeClient(
        url,
        client_type="tail",
        page_url=url,
        reconnect_delay=config.reconnect_delay_ms / 1000,
        max_reconnect_attempts=config.max_reconnect_attempts,
        on_reload=on_reload,
        on_graph_update=on_graph,
        on_message=_print_envelope,
    )


async def _run_tail(client: BridgeClient) -> None:
    try:
        await client.run()
    finally:
        await client.disconnect()


def tail(
    root: str | Path = ".",
    host: str | None = None,
    ws_port: int | None = None,
) -> None:
    """Print every envelope a running transport sends.

    Host, port and reconnect policy come from the config file in ``root``;
    ``host`` and ``ws_port`` override it.

    Args:
        root: Project folder whose ``livespec.yaml``/``livespec.toml`` applies.
        host: Transport host.
        ws_port: Transport port.

    """
    from livespec.banner import print_tail_banner

    config = load_config(Path(root), host=host, ws_port=ws_port)
    client = _tail_client(config)
    print_tail_banner(client.url)
    try:
        asyncio.run(_run_tail(client))
    except KeyboardInterrupt:
        print("\n  Stopped.", file=sys.stderr)
