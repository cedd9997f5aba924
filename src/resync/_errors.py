"""Resync error hierarchy.

All resync-specific errors inherit from ResyncError for easy catching.
"""


class ResyncError(Exception):
    """Base error for all resync operations."""


class ConfigError(ResyncError):
    """Invalid or missing configuration."""


class SnapshotError(ResyncError):
    """A file's content could not be read into a snapshot."""


class MarkerError(ResyncError):
    """A marker file line could not be interpreted as a path."""


class ReloadError(ResyncError):
    """The editor refused or failed to reload a document from disk."""
