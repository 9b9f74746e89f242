"""Hierarchy view of a spec graph: ``parentId`` links as a forest."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from livespec.graph.model import SpecNodeCategory

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from livespec._types import NodeID
    from livespec.graph.model import SpecNode


@dataclass(slots=True)
class TreeNode:
    """A spec node with its resolved children.

    Attributes:
        node: The underlying spec node.
        children: Child tree nodes in graph order.
        expanded: Initial disclosure state (groups start expanded).

    """

    node: SpecNode
    children: list[TreeNode] = field(default_factory=list)
    expanded: bool = False

    @property
    def id(self) -> NodeID:
        return self.node.id

    def walk(self) -> Iterable[TreeNode]:
        """Pre-order traversal of this subtree."""
        yield self
        for child in self.children:
            yield from child.walk()


def build_tree(nodes: Sequence[SpecNode]) -> list[TreeNode]:
    """Resolve ``parent_id`` links into a forest.

    A node becomes a root when its ``parent_id`` is None, does not resolve to
    a node in ``nodes``, or would make it its own ancestor.  Children keep the
    order they have in ``nodes``.

    """
    by_id: dict[str, TreeNode] = {
        node.id: TreeNode(node=node, expanded=node.category is SpecNodeCategory.GROUP)
        for node in nodes
    }
    parents = {node.id: node.parent_id for node in nodes}

    roots: list[TreeNode] = []
    for node in nodes:
        tree_node = by_id[node.id]
        parent_id = node.parent_id
        if parent_id is None or parent_id not in by_id or _creates_cycle(node.id, parents):
            roots.append(tree_node)
        else:
            by_id[parent_id].children.append(tree_node)
    return roots


def _creates_cycle(node_id: str, parents: dict[str, str | None]) -> bool:
    """True if following parent links from ``node_id`` leads back to it."""
    seen: set[str] = set()
    current = parents.get(node_id)
    while current is not None and current in parents:
        if current == node_id:
            return True
        if current in seen:
            # Cycle above us that doesn't include this node.
            return False
        seen.add(current)
        current = parents[current]
    return False


def find_node(roots: Iterable[TreeNode], node_id: NodeID) -> TreeNode | None:
    """Depth-first search for ``node_id`` in a forest."""
    for root in roots:
        for tree_node in root.walk():
            if tree_node.id == node_id:
                return tree_node
    return None
