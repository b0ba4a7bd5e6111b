"""
History component - bounded version ledgers with a single active record.
"""

from .component import (
    DEFAULT_MAX_RETAINED,
    HistoryStore,
    most_recent_first,
    parse_entries,
    parse_ledger,
    plan_prune,
    storage_order,
)
from .models import (
    ActivateOutput,
    AppendOutput,
    CurrentAssetOutput,
    HistoryCallback,
    HistoryListOutput,
    LedgerKey,
    PruneOutput,
)
from .ports import ClockPort, DocumentStorePort, RemoteFileDeleterPort

__all__ = [
    # Store
    "DEFAULT_MAX_RETAINED",
    "HistoryStore",
    # Helpers
    "most_recent_first",
    "parse_entries",
    "parse_ledger",
    "plan_prune",
    "storage_order",
    # Models
    "ActivateOutput",
    "AppendOutput",
    "CurrentAssetOutput",
    "HistoryCallback",
    "HistoryListOutput",
    "LedgerKey",
    "PruneOutput",
    # Ports
    "ClockPort",
    "DocumentStorePort",
    "RemoteFileDeleterPort",
]
