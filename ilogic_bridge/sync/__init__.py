"""
Synchronization package wiring host lifecycle events to the rule bridge.
"""

from .bridge import SyncBridge

__all__ = ['SyncBridge']
