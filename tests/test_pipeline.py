"""Tests for livespec.reactive.pipeline: change routing."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from livespec.config import LiveSpecConfig
from livespec.content.watcher import ChangeEvent
from livespec.graph.model import SpecGraphData
from livespec.observability import FileBroadcast, GraphLoaded, GraphSkipped, SyncCollector
from livespec.reactive.host import FileChanged, GraphUpdate, HostEvents
from livespec.reactive.pipeline import SyncPipeline

from tests.conftest import graph_dict, write_graph


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def broadcaster() -> MagicMock:
    """Broadcaster double; ``broadcast`` reports two recipients."""
    mock = MagicMock()
    mock.broadcast = AsyncMock(return_value=2)
    return mock


@pytest.fixture
def host() -> HostEvents:
    return HostEvents()


@pytest.fixture
def collector() -> SyncCollector:
    return SyncCollector()


class _Held:
    """Stands in for the session's graph slot."""

    def __init__(self) -> None:
        self.graph: SpecGraphData | None = None

    def __call__(self, graph: SpecGraphData) -> None:
        self.graph = graph


@pytest.fixture
def held() -> _Held:
    return _Held()


@pytest.fixture
def pipeline(
    config: LiveSpecConfig,
    broadcaster: MagicMock,
    host: HostEvents,
    held: _Held,
    collector: SyncCollector,
) -> SyncPipeline:
    return SyncPipeline(config, broadcaster, host, on_graph=held, collector=collector)


def _event(path: Path, category: str, kind: str = "modified") -> ChangeEvent:
    return ChangeEvent(path=path, kind=kind, category=category)  # type: ignore[arg-type]


def _sent(broadcaster: MagicMock) -> list[dict]:
    return [call.args[0].to_dict() for call in broadcaster.broadcast.await_args_list]


# ---------------------------------------------------------------------------
# HTML changes
# ---------------------------------------------------------------------------


class TestHtmlChange:
    """Served pages reload; the host hears about it."""

    @pytest.mark.asyncio
    async def test_broadcast_and_host_event(
        self,
        pipeline: SyncPipeline,
        broadcaster: MagicMock,
        host: HostEvents,
        tmp_project: Path,
        collector: SyncCollector,
    ) -> None:
        seen: list[FileChanged] = []
        host.subscribe(FileChanged, seen.append)
        page = tmp_project / "index.html"

        await pipeline.handle_change(_event(page, "html"))

        assert seen == [FileChanged(file_path=str(page), content="")]
        (message,) = _sent(broadcaster)
        assert message["type"] == "file:changed"
        assert message["payload"] == {"filePath": str(page), "content": ""}
        (event,) = collector.log.query(event_type=FileBroadcast)
        assert event.clients_notified == 2

    @pytest.mark.asyncio
    async def test_deleted_page_still_broadcast(
        self, pipeline: SyncPipeline, broadcaster: MagicMock, tmp_project: Path
    ) -> None:
        await pipeline.handle_change(_event(tmp_project / "gone.html", "html", "deleted"))
        assert broadcaster.broadcast.await_count == 1


# ---------------------------------------------------------------------------
# Graph changes
# ---------------------------------------------------------------------------


class TestGraphChange:
    """Reload, validate, push, broadcast."""

    @pytest.mark.asyncio
    async def test_reload_order(
        self,
        pipeline: SyncPipeline,
        broadcaster: MagicMock,
        host: HostEvents,
        held: _Held,
        tmp_project: Path,
        collector: SyncCollector,
    ) -> None:
        order: list[str] = []
        host.subscribe(GraphUpdate, lambda e: order.append(f"host:{e.graph.meta.name}"))
        broadcaster.broadcast.side_effect = lambda message: order.append("broadcast") or 1

        path = write_graph(tmp_project / "spec_graph.json", graph_dict("Renamed"))
        await pipeline.handle_change(_event(path, "graph"))

        assert held.graph is not None
        assert held.graph.meta.name == "Renamed"
        assert order == ["host:Renamed", "broadcast"]
        (message,) = _sent(broadcaster)
        assert message["type"] == "graph:sync"
        assert message["payload"]["fullSync"] is True
        assert message["payload"]["graph"] == graph_dict("Renamed")
        (loaded,) = collector.log.query(event_type=GraphLoaded)
        assert loaded.name == "Renamed"

    @pytest.mark.asyncio
    async def test_malformed_graph_keeps_previous(
        self,
        pipeline: SyncPipeline,
        broadcaster: MagicMock,
        host: HostEvents,
        held: _Held,
        tmp_project: Path,
        collector: SyncCollector,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        previous = SpecGraphData.from_dict(graph_dict("Previous"))
        held.graph = previous
        updates: list[GraphUpdate] = []
        host.subscribe(GraphUpdate, updates.append)

        path = write_graph(tmp_project / "spec_graph.json", {"meta": {}, "nodes": []})
        await pipeline.handle_change(_event(path, "graph"))

        assert held.graph is previous
        assert updates == []
        broadcaster.broadcast.assert_not_awaited()
        (skipped,) = collector.log.query(event_type=GraphSkipped)
        assert "edges" in skipped.reason
        assert "Graph skipped" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_edge_without_target_still_syncs(
        self,
        pipeline: SyncPipeline,
        broadcaster: MagicMock,
        held: _Held,
        tmp_project: Path,
        collector: SyncCollector,
    ) -> None:
        data = graph_dict(
            "Edited", edges=[{"from": "login", "to": "pay"}, {"from": "login"}]
        )
        path = write_graph(tmp_project / "spec_graph.json", data)

        await pipeline.handle_change(_event(path, "graph"))

        assert held.graph is not None
        assert held.graph.meta.name == "Edited"
        assert len(held.graph.edges) == 1
        (message,) = _sent(broadcaster)
        assert message["type"] == "graph:sync"
        assert message["payload"]["graph"]["edges"] == [{"from": "login", "to": "pay"}]
        assert collector.log.query(event_type=GraphSkipped) == []

    @pytest.mark.asyncio
    async def test_invalid_json_skipped(
        self, pipeline: SyncPipeline, broadcaster: MagicMock, tmp_project: Path
    ) -> None:
        path = tmp_project / "spec_graph.json"
        path.write_text("{", encoding="utf-8")
        await pipeline.handle_change(_event(path, "graph"))
        broadcaster.broadcast.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_shadowed_subdir_copy_skipped(
        self,
        pipeline: SyncPipeline,
        broadcaster: MagicMock,
        held: _Held,
        tmp_project: Path,
        collector: SyncCollector,
    ) -> None:
        (tmp_project / ".LiveSpec").mkdir()
        path = write_graph(tmp_project / ".LiveSpec" / "spec_graph.json", graph_dict("Sub"))

        await pipeline.handle_change(_event(path, "graph"))

        assert held.graph is None
        broadcaster.broadcast.assert_not_awaited()
        (skipped,) = collector.log.query(event_type=GraphSkipped)
        assert "shadowed" in skipped.reason

    @pytest.mark.asyncio
    async def test_subdir_copy_used_without_root_copy(
        self, pipeline: SyncPipeline, held: _Held, tmp_project: Path
    ) -> None:
        (tmp_project / "spec_graph.json").unlink()
        (tmp_project / ".LiveSpec").mkdir()
        path = write_graph(tmp_project / ".LiveSpec" / "spec_graph.json", graph_dict("Sub"))

        await pipeline.handle_change(_event(path, "graph"))

        assert held.graph is not None
        assert held.graph.meta.name == "Sub"

    @pytest.mark.asyncio
    async def test_without_callback(
        self, config: LiveSpecConfig, broadcaster: MagicMock, tmp_project: Path
    ) -> None:
        pipeline = SyncPipeline(config, broadcaster, HostEvents())
        await pipeline.handle_change(_event(tmp_project / "spec_graph.json", "graph"))
        assert broadcaster.broadcast.await_count == 1
