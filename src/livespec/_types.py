"""Shared type definitions for livespec."""

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from livespec.content.watcher import ChangeEvent

# Transport client identifier (``client_<ms>_<suffix>``)
type ClientID = str

# Spec node identifier, unique within one graph
type NodeID = str

# Role of a changed file, decides the sync action
type ChangeCategory = Literal["html", "graph"]

# Kind of filesystem change
type ChangeKind = Literal["created", "modified", "deleted"]

# 2D point on an edge path or a node center
type Point = tuple[float, float]

# Parsed JSON object as received on the wire
type JSONObject = dict[str, Any]

# Async callback invoked for every classified change
type ChangeHandler = Callable[[ChangeEvent], Awaitable[None]]
