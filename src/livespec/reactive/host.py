"""Host push events: what the session tells the UI shell.

The UI shell is an external collaborator.  It subscribes to typed events and
gets an unsubscribe callable back, the same way it would register IPC
listeners.
"""

from __future__ import annotations

import sys
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

    from livespec.graph.model import SpecGraphData


@dataclass(frozen=True, slots=True)
class GraphUpdate:
    """The graph on disk changed (or a project was opened)."""

    graph: SpecGraphData


@dataclass(frozen=True, slots=True)
class FileChanged:
    """A served file changed; ``content`` may be empty."""

    file_path: str
    content: str = ""


@dataclass(frozen=True, slots=True)
class ServerReady:
    """Transport and content server are both listening."""

    ws_port: int
    http_port: int


@dataclass(frozen=True, slots=True)
class ServerStatusChanged:
    """Servers were stopped (``running`` False) or started."""

    running: bool


type HostEvent = GraphUpdate | FileChanged | ServerReady | ServerStatusChanged


class HostEvents:
    """Typed publish/subscribe channel from the session to the UI shell.

    Listener exceptions are reported and do not stop delivery to the
    remaining listeners.
    """

    def __init__(self) -> None:
        self._listeners: dict[type, list[Callable[[Any], None]]] = defaultdict(list)

    def subscribe[E: HostEvent](
        self, event_type: type[E], callback: Callable[[E], None]
    ) -> Callable[[], None]:
        """Register ``callback`` for ``event_type``; returns an unsubscribe callable."""
        self._listeners[event_type].append(callback)

        def unsubscribe() -> None:
            listeners = self._listeners.get(event_type, [])
            if callback in listeners:
                listeners.remove(callback)

        return unsubscribe

    def emit(self, event: HostEvent) -> int:
        """Deliver ``event`` to its listeners and return how many were called."""
        delivered = 0
        for callback in list(self._listeners.get(type(event), [])):
            try:
                callback(event)
            except Exception as exc:
                print(f"  Host listener error ({type(event).__name__}): {exc}", file=sys.stderr)
                continue
            delivered += 1
        return delivered

    def listener_count(self, event_type: type) -> int:
        return len(self._listeners.get(event_type, []))
