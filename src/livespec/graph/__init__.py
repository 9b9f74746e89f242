"""Graph layer: the spec graph model, its hierarchy, and the layout contract."""

from livespec.graph.layout import (
    EngineResult,
    GraphLayout,
    LayeredLayout,
    LayoutEngine,
    NodeBox,
    compute_layout,
    estimate_node_size,
    filter_edges,
)
from livespec.graph.loader import load_graph, load_graph_async, locate_graph_file
from livespec.graph.model import (
    GraphMeta,
    LayoutNode,
    SpecEdge,
    SpecGraphData,
    SpecNode,
    SpecNodeCategory,
    SpecNodeStatus,
)
from livespec.graph.tree import TreeNode, build_tree, find_node

__all__ = [
    "EngineResult",
    "GraphLayout",
    "GraphMeta",
    "LayeredLayout",
    "LayoutEngine",
    "LayoutNode",
    "NodeBox",
    "SpecEdge",
    "SpecGraphData",
    "SpecNode",
    "SpecNodeCategory",
    "SpecNodeStatus",
    "TreeNode",
    "build_tree",
    "compute_layout",
    "estimate_node_size",
    "filter_edges",
    "find_node",
    "load_graph",
    "load_graph_async",
    "locate_graph_file",
]
