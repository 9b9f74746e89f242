"""Content layer: watching the project tree for edits.

Detects changes to served HTML and to the graph file and classifies them for
the sync pipeline.
"""

from livespec.content.watcher import ChangeEvent, ProjectFilter, ProjectWatcher, classify_change

__all__ = [
    "ChangeEvent",
    "ProjectFilter",
    "ProjectWatcher",
    "classify_change",
]
