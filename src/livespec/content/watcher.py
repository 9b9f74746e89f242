"""Directory watcher: turns project edits into classified change events.

Monitors the project root (and the dedicated ``.LiveSpec`` subdirectory when
present).  Each surviving change is classified by file role:

- ``*.html`` changed         -> ``html``  (guests reload)
- ``spec_graph.json`` changed -> ``graph`` (re-parse, full sync)
- anything else              -> ignored
"""

from __future__ import annotations

import asyncio
import sys
from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from watchfiles import Change, DefaultFilter

if TYPE_CHECKING:
    from collections.abc import Iterable

    from livespec._types import ChangeCategory, ChangeHandler, ChangeKind
    from livespec.config import LiveSpecConfig
    from livespec.observability.collector import SyncCollector


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """A file change detected by the watcher.

    Attributes:
        path: Absolute path to the changed file.
        kind: Type of filesystem change.
        category: What kind of file changed (determines the sync action).

    """

    path: Path
    kind: Literal["created", "modified", "deleted"]
    category: Literal["html", "graph"]


# Build output and dependency folders never feed the live view.
IGNORED_DIRS = frozenset({
    "node_modules",
    ".git",
    ".vscode",
    "dist",
    "build",
    "out",
    "__pycache__",
})


def classify_change(path: Path, config: LiveSpecConfig) -> ChangeCategory | None:
    """Determine the role of a changed file.

    Returns None if the file doesn't trigger any action.

    """
    if path.suffix.lower() == ".html":
        return "html"
    if path.name == config.graph_filename:
        return "graph"
    return None


def _settle(changes: set[Change]) -> ChangeKind:
    """Net kind of several changes to one path within a batch."""
    if Change.added in changes and Change.deleted in changes:
        # atomic save: old file removed, new one moved into place
        return "modified"
    if Change.deleted in changes:
        return "deleted"
    if Change.added in changes:
        return "created"
    return "modified"


class ProjectFilter(DefaultFilter):
    """watchfiles filter for a project tree.

    Rejects dotfiles and dot-directories (except the dedicated subdirectory)
    and the folders in ``IGNORED_DIRS``.  Only path components below the
    project root are inspected, so a project that itself lives under e.g.
    ``~/build/`` is still watched.  Editor swap/backup patterns are rejected
    by ``DefaultFilter``.

    """

    def __init__(self, root: Path, livespec_dir: str) -> None:
        super().__init__(ignore_dirs=())
        self._root = root
        self._livespec_dir = livespec_dir

    def __call__(self, change: Change, path: str) -> bool:
        try:
            parts = Path(path).relative_to(self._root).parts
        except ValueError:
            return False

        for part in parts:
            if part in IGNORED_DIRS:
                return False
            if part.startswith(".") and part != self._livespec_dir:
                return False

        return super().__call__(change, path)


class ProjectWatcher:
    """Watches a project directory and feeds change events to a handler.

    Uses ``watchfiles.awatch`` inside an asyncio task.  Write bursts to the
    same path are coalesced by the debounce window (``config.debounce_ms``,
    polled every ``config.step_ms``).

    At most one watch session is active: ``start`` while running stops the
    previous session first.  Handler failures are reported and the watch
    continues.

    Args:
        config: Project configuration (root, subdirectory, debounce timings).
        handler: Async callable invoked once per classified event, in order.
        collector: Optional event collector for failures and lifecycle.

    """

    def __init__(
        self,
        config: LiveSpecConfig,
        handler: ChangeHandler,
        *,
        collector: SyncCollector | None = None,
    ) -> None:
        self._config = config
        self._handler = handler
        self._collector = collector
        self._task: asyncio.Task[None] | None = None
        self._stop_event: asyncio.Event | None = None

    @property
    def is_running(self) -> bool:
        """Whether the watch task is active."""
        return self._task is not None and not self._task.done()

    @property
    def root(self) -> Path:
        """Root directory of the current (or last) watch session."""
        return self._config.root

    def watch_paths(self) -> list[Path]:
        """Paths handed to the watcher: root, plus the subdirectory if it exists."""
        paths = [self._config.root]
        if self._config.livespec_path.is_dir():
            paths.append(self._config.livespec_path)
        return paths

    async def start(self, root: Path | None = None) -> None:
        """Begin watching ``root`` (defaults to the configured root)."""
        if self._task is not None:
            await self.stop()

        if root is not None:
            self._config = replace(self._config, root=root)

        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(
            self._watch_loop(self._stop_event), name="livespec-watcher"
        )
        if self._collector is not None:
            self._collector.record_service("watcher", "started", str(self._config.root))

    async def stop(self) -> None:
        """Stop watching and wait for the watch handle to be released."""
        task = self._task
        if task is None:
            return

        self._task = None
        if self._stop_event is not None:
            self._stop_event.set()
        try:
            await asyncio.wait_for(task, timeout=5.0)
        except TimeoutError:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if self._collector is not None:
            self._collector.record_service("watcher", "stopped", str(self._config.root))

    def events_from(self, raw_changes: Iterable[tuple[Change, str]]) -> list[ChangeEvent]:
        """Convert a watchfiles batch into classified events, sorted by path.

        A batch yields at most one event per path.  Overlapping watch roots
        report the same change twice, and a burst of writes can mix kinds;
        ``_settle`` picks the kind that describes the net effect.
        """
        kinds: dict[Path, set[Change]] = {}
        for change_type, path_str in raw_changes:
            kinds.setdefault(Path(path_str), set()).add(change_type)

        events: list[ChangeEvent] = []
        for path in sorted(kinds):
            category = classify_change(path, self._config)
            if category is None:
                continue
            events.append(ChangeEvent(path=path, kind=_settle(kinds[path]), category=category))
        return events

    async def dispatch(self, event: ChangeEvent) -> None:
        """Run the handler for one event; failures are reported, not raised."""
        try:
            await self._handler(event)
        except Exception as exc:
            print(f"  Sync error: {event.path.name}: {exc}", file=sys.stderr)
            if self._collector is not None:
                self._collector.record_service("watcher", "failed", f"{event.path}: {exc}")

    async def _watch_loop(self, stop_event: asyncio.Event) -> None:
        """Watch task: run awatch and dispatch events until stopped."""
        from watchfiles import awatch

        config = self._config
        try:
            async for raw_changes in awatch(
                *self.watch_paths(),
                watch_filter=ProjectFilter(config.root, config.livespec_dir),
                debounce=config.debounce_ms,
                step=config.step_ms,
                stop_event=stop_event,
            ):
                for event in self.events_from(raw_changes):
                    await self.dispatch(event)
        except Exception as exc:
            print(f"  Watcher error: {config.root}: {exc}", file=sys.stderr)
            if self._collector is not None:
                self._collector.record_service("watcher", "failed", str(exc))
