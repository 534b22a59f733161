"""Process-wide sync flags owned by one reconciler."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from wandersync._constants import PENDING_SYNC_KEY
from wandersync.storage import LocalStore

_logger = logging.getLogger(__name__)


class SyncStatus(StrEnum):
    """Passive status shown to the user; never an interrupting error."""

    OFFLINE = "Offline"
    PENDING = "Changes Pending Sync"
    SYNCING = "Synchronizing…"
    SYNCED = "Synced"


@dataclass
class SyncState:
    """Sync flags for one trip document.

    Only ``pending_sync`` survives a restart; ``last_synced_at`` mirrors
    the document's own stamp for display.
    """

    pending_sync: bool = False
    last_synced_at: str | None = None
    syncing: bool = False
    online: bool = True

    @classmethod
    def load(cls, store: LocalStore) -> SyncState:
        raw = store.get_item(PENDING_SYNC_KEY)
        return cls(pending_sync=(raw or "").strip().lower() == "true")

    def set_pending(self, store: LocalStore, pending: bool) -> None:
        """Update the pending flag and persist it when it changes."""
        if pending == self.pending_sync:
            return
        self.pending_sync = pending
        store.set_item(PENDING_SYNC_KEY, "true" if pending else "false")
        _logger.info("Pending sync flag set to %s", pending)

    @property
    def status(self) -> SyncStatus:
        if not self.online:
            return SyncStatus.OFFLINE
        if self.syncing:
            return SyncStatus.SYNCING
        if self.pending_sync:
            return SyncStatus.PENDING
        return SyncStatus.SYNCED
