"""Core interfaces (ports) for dependency injection."""

from opstrack.core.interfaces.storage import MARKER_KEY, IKeyValueStore

__all__ = [
    "IKeyValueStore",
    "MARKER_KEY",
]
