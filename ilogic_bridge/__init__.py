"""
ilogic-bridge - keeps host application rules in sync with plain rule files
"""

from ilogic_bridge.models import ChangeKind, Document, Rule, ScopeConfig
from ilogic_bridge.store import InMemoryRuleStore, RuleStore
from ilogic_bridge.sync import SyncBridge

__version__ = "0.1.0"
__all__ = [
    "ChangeKind",
    "Document",
    "InMemoryRuleStore",
    "Rule",
    "RuleStore",
    "ScopeConfig",
    "SyncBridge",
]
