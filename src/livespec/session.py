"""Project session: the single owner of project state and live services.

One ``ProjectSession`` per running host.  It holds the ``ProjectState`` and
the three services (watcher, transport, content server), and answers the
host's three operations:

    open_project(path)              -> OpenProjectResult
    start_server(ws_port, http_port) -> StartServerResult
    stop_server()                   -> StopServerResult

None of them raise for expected failures.  A project that can't be opened
comes back canceled; servers that can't start come back with
``success=False`` and zero ports.  Pushes to the UI shell go through
``HostEvents``.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from livespec._errors import ConfigError, GraphError, LiveSpecError
from livespec.config_loader import load_config
from livespec.content.watcher import ProjectWatcher
from livespec.graph.loader import load_graph_async, locate_graph_file
from livespec.graph.model import SpecGraphData
from livespec.observability.collector import SyncCollector
from livespec.reactive.broadcaster import Broadcaster
from livespec.reactive.host import GraphUpdate, HostEvents, ServerReady, ServerStatusChanged
from livespec.reactive.pipeline import SyncPipeline
from livespec.server.app import ContentServer

if TYPE_CHECKING:
    from livespec.config import LiveSpecConfig

# Folder names that, when picked directly, mean "the project is my parent".
_SUBDIR_NAMES = frozenset({".LiveSpec", "LiveSpec"})


@dataclass(slots=True)
class ProjectState:
    """Live state of the open project.  Mutated only by ``ProjectSession``."""

    root_path: Path | None = None
    graph: SpecGraphData | None = None
    server_running: bool = False
    ws_port: int = 0
    http_port: int = 0


@dataclass(frozen=True, slots=True)
class OpenProjectResult:
    root_path: Path | None
    canceled: bool


@dataclass(frozen=True, slots=True)
class StartServerResult:
    success: bool
    ws_port: int = 0
    http_port: int = 0


@dataclass(frozen=True, slots=True)
class StopServerResult:
    success: bool


def resolve_project_root(selected: Path) -> Path:
    """Map a picked folder to the project root.

    Picking the dedicated subdirectory itself opens its parent.
    """
    selected = selected.expanduser().resolve()
    if selected.name in _SUBDIR_NAMES:
        return selected.parent
    return selected


class ProjectSession:
    """Owns ``ProjectState`` and the watcher, transport and content server.

    Args:
        host_events: Channel to the UI shell.  A private one is created when
            omitted.
        collector: Event collector shared by every service.
        **overrides: ``LiveSpecConfig`` fields applied on top of the project's
            config file each time a project is opened.

    """

    def __init__(
        self,
        *,
        host_events: HostEvents | None = None,
        collector: SyncCollector | None = None,
        **overrides: Any,
    ) -> None:
        self.host_events = host_events if host_events is not None else HostEvents()
        self.collector = collector if collector is not None else SyncCollector()
        self._overrides = overrides
        self._config: LiveSpecConfig | None = None
        self._state = ProjectState()

        self.broadcaster = Broadcaster(collector=self.collector)
        self.content_server = ContentServer(collector=self.collector)
        self._watcher: ProjectWatcher | None = None
        self._pipeline: SyncPipeline | None = None

    @property
    def state(self) -> ProjectState:
        return self._state

    @property
    def config(self) -> LiveSpecConfig | None:
        """Configuration of the open project, or None before the first open."""
        return self._config

    @property
    def watcher(self) -> ProjectWatcher | None:
        return self._watcher

    @property
    def pipeline(self) -> SyncPipeline | None:
        return self._pipeline

    # ------------------------------------------------------------------
    # open-project
    # ------------------------------------------------------------------

    async def open_project(self, path: str | Path | None) -> OpenProjectResult:
        """Tear down the current project and open ``path``.

        ``None`` means the picker was dismissed.  The graph file is loaded
        when present; a missing or malformed one leaves an empty
        ``Untitled`` graph.  Servers are left stopped.
        """
        if path is None:
            return OpenProjectResult(root_path=None, canceled=True)

        try:
            root = resolve_project_root(Path(path))
            if not root.is_dir():
                msg = f"project folder not found: {root}"
                raise ConfigError(msg)

            await self._teardown()

            config = load_config(root, **self._overrides)
            self._config = config
            self._state = ProjectState(root_path=config.root)
            self.broadcaster.set_graph_id(None)

            self._pipeline = SyncPipeline(
                config,
                self.broadcaster,
                self.host_events,
                on_graph=self._apply_graph,
                collector=self.collector,
            )
            self._watcher = ProjectWatcher(
                config, self._pipeline.handle_change, collector=self.collector
            )
            await self._watcher.start()

            await self._load_initial_graph(config)
        except (LiveSpecError, OSError) as exc:
            print(f"  Failed to open project: {exc}", file=sys.stderr)
            self.collector.record_service("session", "failed", f"open {path}: {exc}")
            await self._reset()
            return OpenProjectResult(root_path=None, canceled=True)

        self.collector.record_service("session", "info", f"opened {config.root}")
        return OpenProjectResult(root_path=config.root, canceled=False)

    async def _load_initial_graph(self, config: LiveSpecConfig) -> None:
        graph_path = locate_graph_file(config)
        if graph_path is None:
            print(f"  No {config.graph_filename} in {config.root}", file=sys.stderr)
            self._state.graph = SpecGraphData.untitled()
            return

        try:
            graph = await load_graph_async(graph_path)
        except GraphError as exc:
            print(f"  Graph skipped: {exc}", file=sys.stderr)
            self.collector.record_graph_skipped(str(graph_path), str(exc))
            self._state.graph = SpecGraphData.untitled()
            return

        self._apply_graph(graph)
        self.host_events.emit(GraphUpdate(graph=graph))
        self.collector.record_graph_loaded(
            str(graph_path),
            graph.meta.name,
            nodes=len(graph.nodes),
            edges=len(graph.edges),
        )

    def _apply_graph(self, graph: SpecGraphData) -> None:
        self._state.graph = graph
        self.broadcaster.set_graph_id(graph.meta.name)

    # ------------------------------------------------------------------
    # start-server / stop-server
    # ------------------------------------------------------------------

    async def start_server(
        self, ws_port: int | None = None, http_port: int | None = None
    ) -> StartServerResult:
        """Start transport and content server for the open project.

        Ports default to the configured ones; 0 binds an ephemeral port.
        A running pair is stopped first.
        """
        config = self._config
        if config is None or self._state.root_path is None:
            print("  Failed to start servers: no project open", file=sys.stderr)
            return StartServerResult(success=False)

        if self._state.server_running:
            await self._stop_services()

        ws = config.ws_port if ws_port is None else ws_port
        http = config.http_port if http_port is None else http_port
        try:
            bound_ws = await self.broadcaster.start(
                ws, host=config.host, graph_id=self.broadcaster.graph_id
            )
            bound_http = await self.content_server.start(config, port=http, ws_port=bound_ws)
        except LiveSpecError as exc:
            print(f"  Failed to start servers: {exc}", file=sys.stderr)
            await self._stop_services()
            return StartServerResult(success=False)

        self._state.server_running = True
        self._state.ws_port = bound_ws
        self._state.http_port = bound_http
        self.host_events.emit(ServerReady(ws_port=bound_ws, http_port=bound_http))
        return StartServerResult(success=True, ws_port=bound_ws, http_port=bound_http)

    async def stop_server(self) -> StopServerResult:
        """Stop transport and content server.  Safe when already stopped."""
        try:
            await self._stop_services()
        except (LiveSpecError, OSError) as exc:
            print(f"  Failed to stop servers: {exc}", file=sys.stderr)
            return StopServerResult(success=False)

        self.host_events.emit(ServerStatusChanged(running=False))
        return StopServerResult(success=True)

    async def close(self) -> None:
        """Stop every service.  The session can be reopened afterwards."""
        await self._teardown()

    # ------------------------------------------------------------------

    async def _stop_services(self) -> None:
        await self.broadcaster.stop()
        await self.content_server.stop()
        self._state.server_running = False
        self._state.ws_port = 0
        self._state.http_port = 0

    async def _reset(self) -> None:
        """Drop every trace of a project whose open failed part way."""
        await self._teardown()
        self._config = None
        self._state = ProjectState()
        self.broadcaster.set_graph_id(None)

    async def _teardown(self) -> None:
        was_running = self._state.server_running
        await self._stop_services()
        if was_running:
            self.host_events.emit(ServerStatusChanged(running=False))
        if self._watcher is not None:
            await self._watcher.stop()
            self._watcher = None
        self._pipeline = None
