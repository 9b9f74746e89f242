"""LiveSpec configuration.

LiveSpecConfig is the central configuration object, frozen after creation.
"""

from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_WS_PORT = 3899
DEFAULT_HTTP_PORT = 3900
DEFAULT_RECONNECT_DELAY_MS = 2000


@dataclass(frozen=True, slots=True)
class LiveSpecConfig:
    """Configuration for a LiveSpec project session.

    Attributes:
        root: Path to the project root (the folder holding the prototype).
              Always resolved to an absolute path on construction.
        host: Bind address for the transport and content servers.
        ws_port: Port of the broadcast transport (WebSocket).
        http_port: Port of the content server (HTTP).
        livespec_dir: Name of the optional dedicated subdirectory.
        graph_filename: Canonical name of the graph file.
        debounce_ms: Stability window for coalescing write bursts.
        step_ms: Poll interval of the watcher while debouncing.
        reconnect_delay_ms: Delay before a bridge client reconnects.  Announced
            to injected page clients and used by ``livespec tail``.
        max_reconnect_attempts: Reconnect bound for bridge clients (0 = unlimited).
        bridge_script: Explicit path to the bridge script asset.  When unset,
            the packaged ``static/client.js`` is used.
        host_origins: Origins allowed to send commands into served pages.
            Empty means "only the enclosing frame", without an origin check.

    """

    root: Path = field(default_factory=Path.cwd)
    host: str = "127.0.0.1"
    ws_port: int = DEFAULT_WS_PORT
    http_port: int = DEFAULT_HTTP_PORT
    livespec_dir: str = ".LiveSpec"
    graph_filename: str = "spec_graph.json"
    debounce_ms: int = 100
    step_ms: int = 50
    reconnect_delay_ms: int = DEFAULT_RECONNECT_DELAY_MS
    max_reconnect_attempts: int = 0
    bridge_script: Path | None = None
    host_origins: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # watchfiles reports absolute paths; comparisons need an absolute root.
        if not self.root.is_absolute():
            object.__setattr__(self, "root", self.root.resolve())

    @property
    def livespec_path(self) -> Path:
        """Absolute path to the dedicated subdirectory (may not exist)."""
        return self.root / self.livespec_dir

    @property
    def graph_candidates(self) -> tuple[Path, Path]:
        """Graph file locations in lookup order: root first, then subdirectory."""
        return (
            self.root / self.graph_filename,
            self.livespec_path / self.graph_filename,
        )

    @property
    def static_root(self) -> Path:
        """Directory served by the content server.

        Prefers the dedicated subdirectory over the root, the reverse of
        graph lookup order.
        """
        if self.livespec_path.is_dir():
            return self.livespec_path
        return self.root
