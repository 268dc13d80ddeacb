"""Installer engines.

- targets: editors, categories and destination lookup
- conflicts: conflict resolution controller and backups
- sync: file synchronization engine
- bridge: configuration format bridge (jq and text-scanning strategies)
- registry, docs, source: registry install, shared docs, source tree
- orchestrator: the install state machine
"""

from .bridge import JqBridge, RegistryBridge, TextScanBridge, select_bridge
from .conflicts import ConflictAction, ConflictPolicy, ConflictResolver, ConflictScope
from .orchestrator import InstallPlan, InstallRequest, InstallSummary, Orchestrator, Stage
from .source import SourceTree, fetch_source, locate_source
from .sync import FileSynchronizer, SyncReport
from .targets import CATEGORIES, EDITORS, InstallTarget

__all__ = [
    "CATEGORIES",
    "EDITORS",
    "InstallTarget",
    "ConflictAction",
    "ConflictScope",
    "ConflictPolicy",
    "ConflictResolver",
    "FileSynchronizer",
    "SyncReport",
    "RegistryBridge",
    "JqBridge",
    "TextScanBridge",
    "select_bridge",
    "SourceTree",
    "locate_source",
    "fetch_source",
    "Orchestrator",
    "InstallRequest",
    "InstallPlan",
    "InstallSummary",
    "Stage",
]
