"""LiveSpec error hierarchy.

All livespec-specific errors inherit from LiveSpecError for easy catching.
"""


class LiveSpecError(Exception):
    """Base error for all livespec operations."""


class ConfigError(LiveSpecError):
    """Invalid or missing configuration."""


class GraphError(LiveSpecError):
    """A graph file could not be read or does not have the expected shape."""


class TransportError(LiveSpecError):
    """Error in the broadcast transport (bind failure, send failure)."""


class ServerError(LiveSpecError):
    """Error starting or stopping the content server."""


class BridgeMessageError(LiveSpecError):
    """A cross-context bridge message failed origin or shape validation."""
