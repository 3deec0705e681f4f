"""
Exceptions raised by the replication pipeline.
"""


class ReplicationError(Exception):
    """Base exception for replication errors."""

    pass


class ConfigurationError(ReplicationError):
    """Raised when required configuration is missing or invalid."""

    pass


class CheckpointLoadError(ReplicationError):
    """Raised when a persisted resume token exists but cannot be read."""

    pass


class MalformedUpdateError(ReplicationError):
    """Raised when an update event carries no usable field delta."""

    pass
