"""Layout contract: sized nodes + parents + edges in, positions + paths out.

The geometry itself belongs to a ``LayoutEngine`` (any callable with the
protocol's signature).  This module owns what happens around it:

1. Size every node from its category (``estimate_node_size``).
2. Drop edges whose endpoints don't exist and report how many were dropped.
3. Call the engine.
4. Map results back onto ``LayoutNode`` / ``SpecEdge``, substituting a
   fallback box for nodes the engine left out.

``LayeredLayout`` is a small left-to-right engine used when the host does not
supply its own.
"""

from __future__ import annotations

import sys
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from livespec.graph.model import LayoutNode, SpecEdge, SpecNodeCategory

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from livespec._types import NodeID, Point
    from livespec.graph.model import SpecGraphData, SpecNode
    from livespec.observability.collector import SyncCollector


NODE_WIDTH = 180
NODE_HEIGHT = 80
GROUP_WIDTH = 350
GROUP_HEIGHT = 250
RANKSEP = 80
NODESEP = 50
MARGINX = 50
MARGINY = 50


@dataclass(frozen=True, slots=True)
class NodeBox:
    """Engine output for one node: center point and size."""

    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True, slots=True)
class EngineResult:
    """What a layout engine returns.

    Attributes:
        nodes: Box per node id.  Missing ids get a fallback box.
        edges: Path per ``(from, to)`` pair.  Missing pairs get an empty path.

    """

    nodes: Mapping[NodeID, NodeBox] = field(default_factory=dict)
    edges: Mapping[tuple[NodeID, NodeID], Sequence[Point]] = field(default_factory=dict)


class LayoutEngine(Protocol):
    """A pure layout function.

    Receives sized nodes (``x``/``y`` are zero, ``parent_id`` carries the
    hierarchy) and edges whose endpoints are guaranteed to exist.
    """

    def __call__(
        self, nodes: Sequence[LayoutNode], edges: Sequence[SpecEdge]
    ) -> EngineResult: ...


@dataclass(frozen=True, slots=True)
class GraphLayout:
    """Result of a layout pass.

    Attributes:
        nodes: Every graph node, positioned.
        edges: Only the edges that survived filtering, with points.
        dropped_edges: Number of edges removed for dangling endpoints.

    """

    nodes: tuple[LayoutNode, ...] = ()
    edges: tuple[SpecEdge, ...] = ()
    dropped_edges: int = 0


def estimate_node_size(category: SpecNodeCategory) -> tuple[int, int]:
    """Default ``(width, height)`` for a node category."""
    if category is SpecNodeCategory.GROUP:
        return GROUP_WIDTH, GROUP_HEIGHT
    return NODE_WIDTH, NODE_HEIGHT


def sized_node(node: SpecNode, *, x: float = 0.0, y: float = 0.0) -> LayoutNode:
    """Lift a SpecNode into a LayoutNode with its estimated size."""
    width, height = estimate_node_size(node.category)
    return LayoutNode(
        id=node.id,
        category=node.category,
        label=node.label,
        status=node.status,
        parent_id=node.parent_id,
        description=node.description,
        x=x,
        y=y,
        width=width,
        height=height,
    )


def filter_edges(
    node_ids: Iterable[NodeID], edges: Sequence[SpecEdge]
) -> tuple[tuple[SpecEdge, ...], int]:
    """Keep edges whose endpoints both exist.

    Returns:
        ``(valid_edges, dropped_count)``.

    """
    known = frozenset(node_ids)
    valid = tuple(e for e in edges if e.from_id in known and e.to_id in known)
    return valid, len(edges) - len(valid)


def compute_layout(
    graph: SpecGraphData,
    engine: LayoutEngine | None = None,
    *,
    collector: SyncCollector | None = None,
) -> GraphLayout:
    """Run one layout pass over ``graph``.

    Dangling edges are dropped before the engine sees them; the count is
    returned and, when a collector is given, recorded.  An engine failure
    yields an empty layout rather than an exception.

    """
    if not graph.nodes:
        return GraphLayout()

    engine = engine if engine is not None else LayeredLayout()
    sized = tuple(sized_node(node) for node in graph.nodes)
    valid_edges, dropped = filter_edges(graph.node_ids, graph.edges)

    if dropped:
        print(
            f"  Layout: filtered {dropped} invalid edge{'s' if dropped != 1 else ''}",
            file=sys.stderr,
        )
        if collector is not None:
            collector.record_edges_dropped(graph.meta.name, dropped=dropped, kept=len(valid_edges))

    try:
        result = engine(sized, valid_edges)
    except Exception as exc:
        print(f"  Layout error: {exc}", file=sys.stderr)
        return GraphLayout(dropped_edges=dropped)

    nodes: list[LayoutNode] = []
    for node in sized:
        box = result.nodes.get(node.id)
        if box is None:
            nodes.append(node)
            continue
        nodes.append(
            LayoutNode(
                id=node.id,
                category=node.category,
                label=node.label,
                status=node.status,
                parent_id=node.parent_id,
                description=node.description,
                x=box.x,
                y=box.y,
                width=box.width,
                height=box.height,
            )
        )

    edges = tuple(
        SpecEdge(
            from_id=e.from_id,
            to_id=e.to_id,
            label=e.label,
            points=tuple(result.edges.get((e.from_id, e.to_id), ())),
        )
        for e in valid_edges
    )
    return GraphLayout(nodes=tuple(nodes), edges=edges, dropped_edges=dropped)


class LayeredLayout:
    """Left-to-right layered layout.

    Ranks nodes by longest path from a source (back edges in cycles are
    ignored), lays ranks out as columns, and stacks nodes within a column.
    Edges run from the right middle of the source to the left middle of the
    target.  Parent links are not drawn as clusters.

    """

    def __init__(
        self,
        *,
        ranksep: float = RANKSEP,
        nodesep: float = NODESEP,
        marginx: float = MARGINX,
        marginy: float = MARGINY,
    ) -> None:
        self.ranksep = ranksep
        self.nodesep = nodesep
        self.marginx = marginx
        self.marginy = marginy

    def __call__(
        self, nodes: Sequence[LayoutNode], edges: Sequence[SpecEdge]
    ) -> EngineResult:
        ranks = self._rank(nodes, edges)

        columns: dict[int, list[LayoutNode]] = defaultdict(list)
        for node in nodes:
            columns[ranks[node.id]].append(node)

        boxes: dict[str, NodeBox] = {}
        left = self.marginx
        for rank in sorted(columns):
            column = columns[rank]
            col_width = max(n.width for n in column)
            top = self.marginy
            for node in column:
                boxes[node.id] = NodeBox(
                    x=left + col_width / 2,
                    y=top + node.height / 2,
                    width=node.width,
                    height=node.height,
                )
                top += node.height + self.nodesep
            left += col_width + self.ranksep

        paths: dict[tuple[str, str], tuple[Point, ...]] = {}
        for edge in edges:
            src = boxes[edge.from_id]
            dst = boxes[edge.to_id]
            paths[(edge.from_id, edge.to_id)] = (
                (src.x + src.width / 2, src.y),
                (dst.x - dst.width / 2, dst.y),
            )
        return EngineResult(nodes=boxes, edges=paths)

    @staticmethod
    def _rank(nodes: Sequence[LayoutNode], edges: Sequence[SpecEdge]) -> dict[str, int]:
        """Longest-path rank per node; back edges are skipped."""
        outgoing: dict[str, list[str]] = defaultdict(list)
        for edge in edges:
            outgoing[edge.from_id].append(edge.to_id)

        # Iterative DFS: collect a topological order, ignoring back edges.
        order: list[str] = []
        state: dict[str, int] = {}  # 1 = on stack, 2 = done
        for node in nodes:
            if node.id in state:
                continue
            stack: list[tuple[str, int]] = [(node.id, 0)]
            state[node.id] = 1
            while stack:
                current, idx = stack[-1]
                targets = outgoing.get(current, [])
                if idx < len(targets):
                    stack[-1] = (current, idx + 1)
                    nxt = targets[idx]
                    if nxt not in state:
                        state[nxt] = 1
                        stack.append((nxt, 0))
                else:
                    state[current] = 2
                    order.append(current)
                    stack.pop()
        order.reverse()

        position = {node_id: i for i, node_id in enumerate(order)}
        ranks = dict.fromkeys(position, 0)
        for node_id in order:
            for nxt in outgoing.get(node_id, []):
                if position[nxt] > position[node_id]:
                    ranks[nxt] = max(ranks[nxt], ranks[node_id] + 1)
        return ranks
