"""Sync pipeline coordinator: connects the watcher to the host and transport.

Orchestrates the change propagation flow:
    1. ProjectWatcher detects and classifies a file change (ChangeEvent)
    2. HTML change  -> ``file:changed`` broadcast + host FileChanged
    3. Graph change -> read + validate the file (awaited), then host
       GraphUpdate + ``graph:sync`` broadcast
    4. Malformed graph -> skipped and recorded; the held graph is untouched
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from livespec._errors import GraphError
from livespec.graph.loader import load_graph_async, locate_graph_file
from livespec.reactive.host import FileChanged, GraphUpdate
from livespec.reactive.protocol import file_changed_message, graph_sync_message

if TYPE_CHECKING:
    from collections.abc import Callable

    from livespec.config import LiveSpecConfig
    from livespec.content.watcher import ChangeEvent
    from livespec.graph.model import SpecGraphData
    from livespec.observability.collector import SyncCollector
    from livespec.reactive.broadcaster import Broadcaster
    from livespec.reactive.host import HostEvents


class SyncPipeline:
    """Routes classified changes to the host UI and to transport clients.

    The pipeline never owns project state.  A successfully loaded graph is
    handed to ``on_graph`` (the session stores it) before anything is pushed
    or broadcast.

    Args:
        config: Project configuration (graph file precedence).
        broadcaster: Transport used for ``file:changed`` / ``graph:sync``.
        host: Host event channel.
        on_graph: Called with each newly loaded graph.
        collector: Optional event collector.

    """

    def __init__(
        self,
        config: LiveSpecConfig,
        broadcaster: Broadcaster,
        host: HostEvents,
        *,
        on_graph: Callable[[SpecGraphData], None] | None = None,
        collector: SyncCollector | None = None,
    ) -> None:
        self._config = config
        self._broadcaster = broadcaster
        self._host = host
        self._on_graph = on_graph
        self._collector = collector

    async def handle_change(self, event: ChangeEvent) -> None:
        """Process a single classified change."""
        if event.category == "html":
            await self._handle_html_change(event)
        elif event.category == "graph":
            await self._handle_graph_change(event)

    async def _handle_html_change(self, event: ChangeEvent) -> None:
        """HTML changed: tell guests to reload; content isn't needed."""
        file_path = str(event.path)
        self._host.emit(FileChanged(file_path=file_path, content=""))
        count = await self._broadcaster.broadcast(file_changed_message(file_path))
        if self._collector is not None:
            self._collector.record_file_broadcast(file_path, event.kind, clients_notified=count)

    async def _handle_graph_change(self, event: ChangeEvent) -> None:
        """Graph file changed: reload, validate, push, broadcast."""
        path = event.path

        # Root copy wins over the .LiveSpec copy while both exist.
        preferred = locate_graph_file(self._config)
        if preferred is not None and preferred.resolve() != path.resolve():
            self._skip(path, f"shadowed by {preferred}")
            return

        try:
            graph = await load_graph_async(path)
        except GraphError as exc:
            self._skip(path, str(exc))
            return

        if self._on_graph is not None:
            self._on_graph(graph)
        self._host.emit(GraphUpdate(graph=graph))
        count = await self._broadcaster.broadcast(graph_sync_message(graph, full_sync=True))

        if self._collector is not None:
            self._collector.record_graph_loaded(
                str(path),
                graph.meta.name,
                nodes=len(graph.nodes),
                edges=len(graph.edges),
                clients_notified=count,
            )

    def _skip(self, path: object, reason: str) -> None:
        print(f"  Graph skipped: {reason}", file=sys.stderr)
        if self._collector is not None:
            self._collector.record_graph_skipped(str(path), reason)
