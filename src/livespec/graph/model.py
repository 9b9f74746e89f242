"""Spec graph model: the typed form of ``spec_graph.json``.

The persisted format is flat (nodes + edges + meta) so it diffs cleanly in
version control.  Screen positions are never stored: ``LayoutNode``
coordinates and ``SpecEdge.points`` exist only in memory and are recomputed by
the layout engine whenever the graph changes.  ``SpecGraphData.to_dict()``
enforces this by never emitting them.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from livespec._errors import GraphError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from livespec._types import JSONObject, NodeID, Point


class SpecNodeCategory(StrEnum):
    """Node category: container cluster or leaf card."""

    GROUP = "group"
    SPEC = "spec"


class SpecNodeStatus(StrEnum):
    """Lifecycle status of a spec node."""

    PENDING = "pending"
    VERIFIED = "verified"
    BROKEN = "broken"
    APPROVED = "approved"


@dataclass(frozen=True, slots=True)
class SpecNode:
    """A persisted vertex.

    Attributes:
        id: Unique, stable identifier within the graph.
        category: Group (cluster) or spec (leaf).
        label: Human-readable title.
        status: Lifecycle status.
        parent_id: Id of the enclosing node, or None for a root.  Ids that
            don't resolve are treated as roots, never rejected.
        description: Optional longer text.

    """

    id: NodeID
    category: SpecNodeCategory = SpecNodeCategory.SPEC
    label: str = ""
    status: SpecNodeStatus = SpecNodeStatus.PENDING
    parent_id: NodeID | None = None
    description: str | None = None

    def to_dict(self) -> JSONObject:
        """Serialize to the on-disk node shape (camelCase keys)."""
        data: JSONObject = {
            "id": self.id,
            "category": self.category.value,
            "label": self.label,
            "status": self.status.value,
            "parentId": self.parent_id,
        }
        if self.description is not None:
            data["description"] = self.description
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SpecNode:
        """Build a node from its on-disk shape.

        Unknown category/status strings fall back to SPEC/PENDING.

        Raises:
            GraphError: If ``id`` is missing or not a string.

        """
        node_id = data.get("id")
        if not isinstance(node_id, str) or not node_id:
            msg = f"node without a string id: {dict(data)!r}"
            raise GraphError(msg)

        parent = data.get("parentId")
        description = data.get("description")
        return cls(
            id=node_id,
            category=_coerce_enum(SpecNodeCategory, data.get("category"), SpecNodeCategory.SPEC),
            label=_text(data.get("label")),
            status=_coerce_enum(SpecNodeStatus, data.get("status"), SpecNodeStatus.PENDING),
            parent_id=parent if isinstance(parent, str) and parent else None,
            description=str(description) if description is not None else None,
        )


@dataclass(frozen=True, slots=True)
class LayoutNode(SpecNode):
    """A SpecNode positioned by the layout engine.  Memory only.

    Attributes:
        x: Center x.
        y: Center y.
        width: Rendered width.
        height: Rendered height.

    """

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    def to_dict(self) -> JSONObject:
        """Serialize for the host UI, coordinates included."""
        data = SpecNode.to_dict(self)
        data.update(x=self.x, y=self.y, width=self.width, height=self.height)
        return data

    def as_spec_node(self) -> SpecNode:
        """Strip the runtime layout fields."""
        return SpecNode(
            id=self.id,
            category=self.category,
            label=self.label,
            status=self.status,
            parent_id=self.parent_id,
            description=self.description,
        )


@dataclass(frozen=True, slots=True)
class SpecEdge:
    """A directed relation between two nodes.

    Attributes:
        from_id: Source node id (``from`` on disk).
        to_id: Target node id (``to`` on disk).
        label: Optional edge label.
        points: Rendered path, filled in by the layout engine.  Never persisted.

    """

    from_id: NodeID
    to_id: NodeID
    label: str | None = None
    points: tuple[Point, ...] | None = field(default=None, compare=False)

    def to_dict(self, *, include_points: bool = False) -> JSONObject:
        """Serialize to the on-disk edge shape.

        ``include_points`` is for host-side rendering payloads only.
        """
        data: JSONObject = {"from": self.from_id, "to": self.to_id}
        if self.label is not None:
            data["label"] = self.label
        if include_points and self.points is not None:
            data["points"] = [{"x": x, "y": y} for x, y in self.points]
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SpecEdge:
        """Build an edge from its on-disk shape; ``points`` are ignored.

        Raises:
            GraphError: If ``from`` or ``to`` is missing.

        """
        from_id = data.get("from")
        to_id = data.get("to")
        if not isinstance(from_id, str) or not isinstance(to_id, str):
            msg = f"edge without string 'from'/'to': {dict(data)!r}"
            raise GraphError(msg)
        label = data.get("label")
        return cls(from_id=from_id, to_id=to_id, label=str(label) if label is not None else None)


@dataclass(frozen=True, slots=True)
class GraphMeta:
    """Graph metadata."""

    name: str
    version: str


@dataclass(frozen=True, slots=True)
class SpecGraphData:
    """The persisted unit, exactly the shape of ``spec_graph.json``.

    Replaced wholesale on every reload; there is no incremental patching.
    """

    meta: GraphMeta
    nodes: tuple[SpecNode, ...] = ()
    edges: tuple[SpecEdge, ...] = ()

    @classmethod
    def untitled(cls) -> SpecGraphData:
        """The empty graph used for projects without a graph file."""
        return cls(meta=GraphMeta(name="Untitled", version="1.0.0"))

    @property
    def node_ids(self) -> frozenset[NodeID]:
        """Set of all node ids."""
        return frozenset(node.id for node in self.nodes)

    def get_node(self, node_id: NodeID) -> SpecNode | None:
        """Return the node with ``node_id``, or None."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def to_dict(self) -> JSONObject:
        """Serialize to the file format.  Never includes coordinates."""
        return {
            "meta": {"name": self.meta.name, "version": self.meta.version},
            "nodes": [
                node.as_spec_node().to_dict() if isinstance(node, LayoutNode) else node.to_dict()
                for node in self.nodes
            ],
            "edges": [edge.to_dict() for edge in self.edges],
        }

    @classmethod
    def from_dict(cls, data: object) -> SpecGraphData:
        """Parse the file format; see ``parse``."""
        graph, _ = cls.parse(data)
        return graph

    @classmethod
    def parse(cls, data: object) -> tuple[SpecGraphData, int]:
        """Parse the file format, skipping entries that can't be used.

        Only the outer shape is fatal: ``meta`` is an object and ``nodes``
        and ``edges`` are arrays.  Non-object entries, nodes without an id,
        repeated ids (the first one wins) and edges without ``from``/``to``
        are left out.  Dangling edge endpoints and parent ids are kept;
        layout and tree building handle them.

        Returns:
            ``(graph, skipped_count)``.

        Raises:
            GraphError: If the outer shape is invalid.

        """
        if not isinstance(data, Mapping):
            msg = "graph must be a JSON object"
            raise GraphError(msg)

        meta = data.get("meta")
        if not isinstance(meta, Mapping):
            msg = "graph is missing 'meta'"
            raise GraphError(msg)
        nodes = data.get("nodes")
        if not isinstance(nodes, list):
            msg = "graph 'nodes' must be an array"
            raise GraphError(msg)
        edges = data.get("edges")
        if not isinstance(edges, list):
            msg = "graph 'edges' must be an array"
            raise GraphError(msg)

        parsed_nodes: dict[NodeID, SpecNode] = {}
        for entry in _entries(nodes, SpecNode.from_dict):
            parsed_nodes.setdefault(entry.id, entry)
        parsed_edges = tuple(_entries(edges, SpecEdge.from_dict))
        skipped = len(nodes) + len(edges) - len(parsed_nodes) - len(parsed_edges)

        graph = cls(
            meta=GraphMeta(
                name=_text(meta.get("name")) or "Untitled",
                version=_text(meta.get("version")) or "1.0.0",
            ),
            nodes=tuple(parsed_nodes.values()),
            edges=parsed_edges,
        )
        return graph, skipped


def _entries[T](raw: list[Any], build: Callable[[Mapping[str, Any]], T]) -> Iterator[T]:
    for item in raw:
        if not isinstance(item, Mapping):
            continue
        try:
            yield build(item)
        except GraphError:
            continue


def _coerce_enum[E: StrEnum](enum_cls: type[E], value: object, default: E) -> E:
    try:
        return enum_cls(value)
    except ValueError:
        return default


def _text(value: object) -> str:
    return "" if value is None else str(value)
