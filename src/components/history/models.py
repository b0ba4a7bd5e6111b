"""
History component input/output models.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from src.core.entities import AssetRecord
from src.core.errors import AssetError

HistoryCallback = Callable[[list[AssetRecord]], None]


@dataclass(frozen=True)
class LedgerKey:
    """
    Address of one (owner, slot) ledger in the document store.

    users/{owner}/{slot}History/{recordId}  - ledger entries
    users/{owner}/{slot}_image              - owner's current-asset url
    """

    owner_id: str
    slot: str

    @property
    def owner_path(self) -> str:
        return f"users/{self.owner_id}"

    @property
    def history_field(self) -> str:
        return f"{self.slot}History"

    @property
    def history_path(self) -> str:
        return f"{self.owner_path}/{self.history_field}"

    @property
    def current_field(self) -> str:
        return f"{self.slot}_image"


@dataclass(frozen=True)
class AppendOutput:
    """Output from appending a new version."""

    record: AssetRecord | None = None
    evicted: list[AssetRecord] = field(default_factory=list)
    errors: list[AssetError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class HistoryListOutput:
    """Ledger entries, most recent first."""

    items: list[AssetRecord] = field(default_factory=list)
    errors: list[AssetError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class ActivateOutput:
    """Output from activating a version."""

    url: str | None = None
    record: AssetRecord | None = None
    errors: list[AssetError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class PruneOutput:
    """Output from retention pruning."""

    removed: list[AssetRecord] = field(default_factory=list)
    errors: list[AssetError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class CurrentAssetOutput:
    """Owner's current-asset pointer for a slot."""

    url: str | None = None
    errors: list[AssetError] = field(default_factory=list)
    success: bool = True
