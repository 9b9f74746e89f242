"""Recording front end for the live-sync ``EventLog``.

One collector is shared by the session, the watcher pipeline and the
transport, so ``/__livespec/stats`` sees a single timeline.  Every
``record_*`` call stamps the event with ``now_ns()``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from livespec.observability import events
from livespec.observability.log import EventLog

if TYPE_CHECKING:
    from livespec.observability.events import SyncEvent

type ChangeKind = Literal["created", "modified", "deleted"]
type Service = Literal["watcher", "transport", "content", "session"]
type Action = Literal["started", "stopped", "failed", "info"]


class SyncCollector:
    """Typed ``record_*`` helpers over an ``EventLog``.

    Args:
        log: Log to append to; a fresh one is created when omitted.

    """

    __slots__ = ("_log",)

    def __init__(self, log: EventLog | None = None) -> None:
        self._log = EventLog() if log is None else log

    @property
    def log(self) -> EventLog:
        return self._log

    def _record(self, event_cls: type[SyncEvent], **values: object) -> None:
        self._log.append(event_cls(timestamp_ns=events.now_ns(), **values))  # type: ignore[call-arg]

    # graph pipeline

    def record_graph_loaded(
        self,
        path: str,
        name: str,
        *,
        nodes: int = 0,
        edges: int = 0,
        clients_notified: int = 0,
    ) -> None:
        """A graph file was (re)loaded and pushed out."""
        self._record(
            events.GraphLoaded,
            path=path,
            name=name,
            nodes=nodes,
            edges=edges,
            clients_notified=clients_notified,
        )

    def record_graph_skipped(self, path: str, reason: str) -> None:
        """A graph file was rejected; the previous graph is kept."""
        self._record(events.GraphSkipped, path=path, reason=reason)

    def record_edges_dropped(self, graph: str, *, dropped: int, kept: int) -> None:
        self._record(events.EdgesDropped, graph=graph, dropped=dropped, kept=kept)

    def record_file_broadcast(
        self, path: str, kind: ChangeKind, *, clients_notified: int = 0
    ) -> None:
        self._record(events.FileBroadcast, path=path, kind=kind, clients_notified=clients_notified)

    # transport

    def record_connect(self, client_id: str, remote: str = "") -> None:
        self._record(events.ClientConnected, client_id=client_id, remote=remote)

    def record_disconnect(self, client_id: str) -> None:
        self._record(events.ClientDisconnected, client_id=client_id)

    def record_fault(self, client_id: str, code: str, detail: str) -> None:
        """A client message was answered with an error or ignored."""
        self._record(events.TransportFault, client_id=client_id, code=code, detail=detail)

    # services

    def record_service(self, service: Service, action: Action, detail: str = "") -> None:
        self._record(events.ServiceEvent, service=service, action=action, detail=detail)
