"""
Core synchronization components: scope resolution, path mapping, export,
folder watching and change processing.
"""

from .context import LoopContext, OwnerContext, QueueContext
from .export import ExportEngine, ExportResult
from .processor import ChangeProcessor
from .scope import find_config, parse_config, resolve_scope, should_ignore
from .watcher import WatchManager

__all__ = [
    'ChangeProcessor',
    'ExportEngine',
    'ExportResult',
    'LoopContext',
    'OwnerContext',
    'QueueContext',
    'WatchManager',
    'find_config',
    'parse_config',
    'resolve_scope',
    'should_ignore',
]
