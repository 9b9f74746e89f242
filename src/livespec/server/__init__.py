"""Content server: serves the project and injects the bridge client."""

from livespec.server.app import HEALTH_ENDPOINT, STATS_ENDPOINT, ContentServer, create_app
from livespec.server.assets import resolve_bridge_script, resolve_static_root
from livespec.server.inject import (
    BRIDGE_SCRIPT_URL,
    BridgeInjectionMiddleware,
    bridge_tag,
    inject_bridge,
)

__all__ = [
    "BRIDGE_SCRIPT_URL",
    "HEALTH_ENDPOINT",
    "STATS_ENDPOINT",
    "BridgeInjectionMiddleware",
    "ContentServer",
    "bridge_tag",
    "create_app",
    "inject_bridge",
    "resolve_bridge_script",
    "resolve_static_root",
]
