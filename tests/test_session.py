"""Tests for livespec.session: the host's three operations."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from websockets.asyncio.client import connect

from livespec.content.watcher import ChangeEvent
from livespec.graph.model import SpecGraphData
from livespec.reactive.host import GraphUpdate, ServerReady, ServerStatusChanged
from livespec.session import ProjectSession, resolve_project_root

from tests.conftest import graph_dict, write_graph


@pytest_asyncio.fixture
async def session() -> AsyncIterator[ProjectSession]:
    s = ProjectSession()
    yield s
    await s.close()


class TestResolveProjectRoot:
    def test_plain_folder(self, tmp_path: Path) -> None:
        assert resolve_project_root(tmp_path) == tmp_path.resolve()

    @pytest.mark.parametrize("name", [".LiveSpec", "LiveSpec"])
    def test_subdir_selects_parent(self, tmp_path: Path, name: str) -> None:
        (tmp_path / name).mkdir()
        assert resolve_project_root(tmp_path / name) == tmp_path.resolve()


class TestOpenProject:
    """open-project"""

    @pytest.mark.asyncio
    async def test_dismissed_picker(self, session: ProjectSession) -> None:
        result = await session.open_project(None)
        assert result.canceled
        assert result.root_path is None

    @pytest.mark.asyncio
    async def test_missing_folder(self, session: ProjectSession, tmp_path: Path) -> None:
        result = await session.open_project(tmp_path / "nope")
        assert result.canceled
        assert session.state.root_path is None

    @pytest.mark.asyncio
    async def test_loads_graph(self, session: ProjectSession, tmp_project: Path) -> None:
        updates: list[GraphUpdate] = []
        session.host_events.subscribe(GraphUpdate, updates.append)

        result = await session.open_project(tmp_project)

        assert not result.canceled
        assert result.root_path == tmp_project.resolve()
        assert session.state.root_path == tmp_project.resolve()
        assert session.state.graph is not None
        assert session.state.graph.meta.name == "Checkout"
        assert [u.graph.meta.name for u in updates] == ["Checkout"]
        assert session.broadcaster.graph_id == "Checkout"
        assert session.watcher is not None and session.watcher.is_running
        assert not session.state.server_running

    @pytest.mark.asyncio
    async def test_livespec_selection_opens_parent(
        self, session: ProjectSession, tmp_project: Path
    ) -> None:
        (tmp_project / ".LiveSpec").mkdir()
        result = await session.open_project(tmp_project / ".LiveSpec")
        assert result.root_path == tmp_project.resolve()

    @pytest.mark.asyncio
    async def test_missing_graph_is_untitled(
        self, session: ProjectSession, tmp_path: Path
    ) -> None:
        updates: list[GraphUpdate] = []
        session.host_events.subscribe(GraphUpdate, updates.append)

        result = await session.open_project(tmp_path)

        assert not result.canceled
        assert session.state.graph == SpecGraphData.untitled()
        assert updates == []
        assert session.broadcaster.graph_id is None

    @pytest.mark.asyncio
    async def test_malformed_graph_is_untitled(
        self, session: ProjectSession, tmp_path: Path
    ) -> None:
        write_graph(tmp_path / "spec_graph.json", {"meta": {}, "nodes": []})
        await session.open_project(tmp_path)
        assert session.state.graph is not None
        assert session.state.graph.meta.name == "Untitled"

    @pytest.mark.asyncio
    async def test_reopen_replaces_project(
        self, session: ProjectSession, tmp_path_factory: pytest.TempPathFactory
    ) -> None:
        first = tmp_path_factory.mktemp("first")
        second = tmp_path_factory.mktemp("second")
        write_graph(first / "spec_graph.json", graph_dict("First"))
        write_graph(second / "spec_graph.json", graph_dict("Second"))

        await session.open_project(first)
        old_watcher = session.watcher
        await session.open_project(second)

        assert old_watcher is not None and not old_watcher.is_running
        assert session.state.graph is not None
        assert session.state.graph.meta.name == "Second"
        assert session.watcher is not None and session.watcher.root == second.resolve()

    @pytest.mark.asyncio
    async def test_config_file_applied(self, session: ProjectSession, tmp_project: Path) -> None:
        (tmp_project / "livespec.yaml").write_text("debounce_ms: 300\n")
        await session.open_project(tmp_project)
        assert session.config is not None
        assert session.config.debounce_ms == 300

    @pytest.mark.asyncio
    async def test_bad_config_value_cancels_and_clears(
        self,
        session: ProjectSession,
        tmp_path_factory: pytest.TempPathFactory,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        good = tmp_path_factory.mktemp("good")
        bad = tmp_path_factory.mktemp("bad")
        write_graph(good / "spec_graph.json", graph_dict("Good"))
        (bad / "livespec.yaml").write_text("host_origins: 5\n")

        await session.open_project(good)
        previous_watcher = session.watcher
        result = await session.open_project(bad)

        assert result.canceled
        assert result.root_path is None
        assert session.config is None
        assert session.state.root_path is None
        assert session.state.graph is None
        assert session.watcher is None
        assert previous_watcher is not None and not previous_watcher.is_running
        assert "host_origins" in capsys.readouterr().err
        assert not (await session.start_server(0, 0)).success


class TestServers:
    """start-server / stop-server"""

    @pytest.mark.asyncio
    async def test_start_without_project(self, session: ProjectSession) -> None:
        result = await session.start_server(0, 0)
        assert not result.success
        assert (result.ws_port, result.http_port) == (0, 0)

    @pytest.mark.asyncio
    async def test_start_and_stop(self, session: ProjectSession, tmp_project: Path) -> None:
        ready: list[ServerReady] = []
        status: list[ServerStatusChanged] = []
        session.host_events.subscribe(ServerReady, ready.append)
        session.host_events.subscribe(ServerStatusChanged, status.append)
        await session.open_project(tmp_project)

        result = await session.start_server(0, 0)

        assert result.success
        assert result.ws_port > 0 and result.http_port > 0
        assert ready == [ServerReady(ws_port=result.ws_port, http_port=result.http_port)]
        assert session.state.server_running
        assert (session.state.ws_port, session.state.http_port) == (
            result.ws_port, result.http_port,
        )

        async with httpx.AsyncClient() as http:
            page = await http.get(f"http://127.0.0.1:{result.http_port}/")
        assert f'data-ws-port="{result.ws_port}"' in page.text

        async with connect(f"ws://127.0.0.1:{result.ws_port}") as conn:
            welcome = json.loads(await conn.recv())
        assert welcome["payload"]["graphId"] == "Checkout"

        stopped = await session.stop_server()
        assert stopped.success
        assert status == [ServerStatusChanged(running=False)]
        assert not session.state.server_running
        assert not session.broadcaster.is_running
        assert not session.content_server.is_running

    @pytest.mark.asyncio
    async def test_restart_while_running(
        self, session: ProjectSession, tmp_project: Path
    ) -> None:
        await session.open_project(tmp_project)
        first = await session.start_server(0, 0)
        second = await session.start_server(0, 0)
        assert first.success and second.success
        assert session.broadcaster.port == second.ws_port

    @pytest.mark.asyncio
    async def test_port_conflict_fails_cleanly(
        self, session: ProjectSession, tmp_project: Path
    ) -> None:
        await session.open_project(tmp_project)
        first = await session.start_server(0, 0)
        other = ProjectSession()
        await other.open_project(tmp_project)
        try:
            result = await other.start_server(0, first.http_port)
            assert not result.success
            assert not other.broadcaster.is_running
            assert not other.state.server_running
        finally:
            await other.close()

    @pytest.mark.asyncio
    async def test_stop_when_stopped(self, session: ProjectSession) -> None:
        result = await session.stop_server()
        assert result.success

    @pytest.mark.asyncio
    async def test_open_stops_running_servers(
        self, session: ProjectSession, tmp_project: Path, tmp_path_factory: pytest.TempPathFactory
    ) -> None:
        status: list[ServerStatusChanged] = []
        session.host_events.subscribe(ServerStatusChanged, status.append)
        await session.open_project(tmp_project)
        await session.start_server(0, 0)

        await session.open_project(tmp_path_factory.mktemp("next"))

        assert status == [ServerStatusChanged(running=False)]
        assert not session.broadcaster.is_running


class TestLiveSync:
    @pytest.mark.asyncio
    async def test_pipeline_updates_session_graph(
        self, session: ProjectSession, tmp_project: Path
    ) -> None:
        await session.open_project(tmp_project)
        assert session.pipeline is not None

        path = write_graph(tmp_project / "spec_graph.json", graph_dict("Edited"))
        await session.pipeline.handle_change(
            ChangeEvent(path=path, kind="modified", category="graph")
        )
        assert session.state.graph is not None
        assert session.state.graph.meta.name == "Edited"
        assert session.broadcaster.graph_id == "Edited"
