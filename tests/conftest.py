"""Shared test fixtures for livespec."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from livespec.config import LiveSpecConfig

INDEX_HTML = (
    "<!DOCTYPE html>\n<html>\n<head><title>Prototype</title></head>\n"
    '<body>\n<a href="/next.html" data-node-id="login">Log in</a>\n</body>\n</html>\n'
)


def graph_dict(
    name: str = "Checkout",
    *,
    nodes: list[dict[str, Any]] | None = None,
    edges: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """A graph in its on-disk shape."""
    if nodes is None:
        nodes = [
            {"id": "flow", "category": "group", "label": "Flow", "status": "pending",
             "parentId": None},
            {"id": "login", "category": "spec", "label": "Login", "status": "verified",
             "parentId": "flow"},
            {"id": "pay", "category": "spec", "label": "Pay", "status": "broken",
             "parentId": "flow", "description": "Card form"},
        ]
    if edges is None:
        edges = [{"from": "login", "to": "pay", "label": "next"}]
    return {"meta": {"name": name, "version": "1.0.0"}, "nodes": nodes, "edges": edges}


def write_graph(path: Path, data: object) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def tmp_project(tmp_path: Path) -> Path:
    """A minimal project: one HTML page and a graph file at the root."""
    (tmp_path / "index.html").write_text(INDEX_HTML, encoding="utf-8")
    (tmp_path / "styles.css").write_text("body { margin: 0; }\n", encoding="utf-8")
    write_graph(tmp_path / "spec_graph.json", graph_dict())
    return tmp_path


@pytest.fixture
def config(tmp_project: Path) -> LiveSpecConfig:
    """A LiveSpecConfig rooted at the temp project."""
    return LiveSpecConfig(root=tmp_project)
