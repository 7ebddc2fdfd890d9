"""Exceptions raised inside the bridge; none of them escape a sync operation."""


class BridgeError(Exception):
    """Base exception for bridge errors."""


class WatchError(BridgeError):
    """Raised when a folder watch cannot be created or re-rooted."""


class StoreError(BridgeError):
    """Raised by a store when an operation cannot be applied."""
