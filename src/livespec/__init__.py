"""LiveSpec: live synchronization between an HTML prototype and its spec graph.

Edit ``index.html`` or ``spec_graph.json`` in a project folder and every
connected page and host view updates.  Served pages carry a small bridge
script that reports clicks on ``[data-node-id]`` elements back to the host
and accepts highlight/navigate commands in return.

Quick start::

    import livespec

    livespec.dev("my-prototype/")

Programmatic use (inside a running event loop)::

    from livespec import ProjectSession

    session = ProjectSession()
    await session.open_project(Path("my-prototype"))
    await session.start_server(ws_port=3899, http_port=3900)

Moving parts:

    content.watcher      Directory watcher   (detects and classifies edits)
    reactive.broadcaster Broadcast transport (WebSocket fan-out)
    server               Content server      (static files + bridge injection)
    bridge               Bridge client       (reconnecting transport client)
    graph                Graph model         (spec_graph.json + layout contract)

"""

__version__ = "1.0.0"
__all__ = [
    "LiveSpecConfig",
    "ProjectSession",
    "__version__",
    "dev",
    "tail",
]


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import livespec`` fast; the server stack is only imported when
    one of these names is first touched.
    """
    if name == "LiveSpecConfig":
        from livespec.config import LiveSpecConfig

        return LiveSpecConfig

    if name == "ProjectSession":
        from livespec.session import ProjectSession

        return ProjectSession

    if name == "dev":
        from livespec.app import dev

        return dev

    if name == "tail":
        from livespec.app import tail

        return tail

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
