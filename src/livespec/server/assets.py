"""Served-asset resolution for the content server.

The bridge script ships inside the package (``livespec/static/client.js``).
A configured path overrides it; a short candidate list covers running from a
source checkout.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from livespec.config import LiveSpecConfig

BRIDGE_SCRIPT_NAME = "client.js"


def _packaged_static_path() -> Path:
    """Absolute path to the bundled ``static`` directory."""
    return Path(__file__).resolve().parent.parent / "static"


def bridge_script_candidates(config: LiveSpecConfig) -> list[Path]:
    """Locations tried for the bridge script, in order."""
    candidates: list[Path] = []
    if config.bridge_script is not None:
        candidates.append(config.bridge_script)
    candidates.append(_packaged_static_path() / BRIDGE_SCRIPT_NAME)
    # Source checkout run from the repository root.
    candidates.append(Path.cwd() / "src" / "livespec" / "static" / BRIDGE_SCRIPT_NAME)
    return candidates


def resolve_bridge_script(config: LiveSpecConfig) -> Path | None:
    """First existing bridge script candidate, or None."""
    for candidate in bridge_script_candidates(config):
        if candidate.is_file():
            return candidate
    return None


def resolve_static_root(config: LiveSpecConfig) -> Path:
    """Directory served as static content: ``.LiveSpec`` if present, else root."""
    return config.static_root
