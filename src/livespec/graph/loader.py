"""Graph file discovery and loading.

The graph file lives either at the project root or inside the dedicated
subdirectory.  When both exist the root copy wins.
"""

from __future__ import annotations

import asyncio
import json
import sys
from typing import TYPE_CHECKING

from livespec._errors import GraphError
from livespec.graph.model import SpecGraphData

if TYPE_CHECKING:
    from pathlib import Path

    from livespec.config import LiveSpecConfig


def locate_graph_file(config: LiveSpecConfig) -> Path | None:
    """Return the graph file to load for a project, or None if there is none."""
    for candidate in config.graph_candidates:
        if candidate.is_file():
            return candidate
    return None


def load_graph(path: Path) -> SpecGraphData:
    """Read and validate a graph file.

    Unusable node and edge entries are skipped and counted on stderr.

    Raises:
        GraphError: If the file can't be read, isn't JSON, or has the wrong outer shape.

    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        msg = f"cannot read {path}: {exc}"
        raise GraphError(msg) from exc

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        msg = f"{path.name} is not valid JSON: {exc}"
        raise GraphError(msg) from exc

    graph, skipped = SpecGraphData.parse(data)
    if skipped:
        print(
            f"  Graph: skipped {skipped} unusable entries in {path.name}",
            file=sys.stderr,
        )
    return graph


async def load_graph_async(path: Path) -> SpecGraphData:
    """``load_graph`` off the event loop; completes before the caller broadcasts."""
    return await asyncio.to_thread(load_graph, path)
