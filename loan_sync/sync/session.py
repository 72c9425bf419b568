"""Wiring between the portfolio store and a realtime mirror.

Once connected the mirror is the shared source of truth: every snapshot it
delivers replaces the local record set. The only exception is the first
snapshot after connecting, which is merged with last-write-wins so that
offline edits made before connecting are not lost; local records that are
newer than the mirror's copy are then pushed back.
"""

import logging
from typing import Any

from loan_sync.models import ChangeSource, LoanRecord, MergeMode
from loan_sync.store.merge import index_by_id, newer
from loan_sync.store.portfolio import PortfolioStore, StoreChange
from loan_sync.sync.base import Subscription, SyncAdapter

logger = logging.getLogger(__name__)


class CloudSession:
    """Keeps a :class:`PortfolioStore` mirrored through a :class:`SyncAdapter`."""

    def __init__(self, store: PortfolioStore, adapter: SyncAdapter) -> None:
        self.store = store
        self.adapter = adapter
        self._subscription: Subscription | None = None
        self._remove_listener = None
        self._initial = True
        self._live = False
        self._handling = False
        self._pending: list[LoanRecord] | None = None

    @property
    def connected(self) -> bool:
        return self._live

    def connect(self, config: Any = None) -> bool:
        """Connect the adapter and start mirroring.

        Returns
        -------
        bool
            False when the adapter could not connect; the store keeps working
            locally.
        """
        if self.connected:
            return True
        if not self.adapter.connect(config):
            logger.warning("Cloud sync unavailable, continuing in local-only mode")
            return False

        self._initial = True
        self._live = True
        self._remove_listener = self.store.subscribe(self._on_store_change)
        self._subscription = self.adapter.subscribe(self._on_snapshot)
        logger.info("Cloud sync started")
        return True

    def disconnect(self) -> None:
        """Stop mirroring. Safe to call more than once."""
        self._live = False
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        if self._remove_listener is not None:
            self._remove_listener()
            self._remove_listener = None
        self._pending = None
        self.adapter.close()
        logger.info("Cloud sync stopped")

    def _on_store_change(self, change: StoreChange) -> None:
        if change.source is not ChangeSource.LOCAL and change.source is not ChangeSource.MERGE:
            return
        # Outbound writes are fire-and-forget; the adapter logs failures
        for record in change.changed:
            self.adapter.push(record)

    def _on_snapshot(self, records: list[LoanRecord]) -> None:
        if self._handling:
            # Snapshots triggered by our own pushes are handled afterwards
            self._pending = records
            return

        self._handling = True
        try:
            self._apply(records)
            while self._pending is not None and self.connected:
                records, self._pending = self._pending, None
                self._apply(records)
        finally:
            self._handling = False
            self._pending = None

    def _apply(self, records: list[LoanRecord]) -> None:
        if not self._initial:
            self.store.apply_incoming(records, MergeMode.REPLACE, ChangeSource.SNAPSHOT)
            return

        self._initial = False
        remote = index_by_id(records)
        self.store.apply_incoming(records, MergeMode.MERGE, ChangeSource.SNAPSHOT)

        outdated = [
            record
            for record in self.store.snapshot()
            if record.id not in remote or newer(record, remote[record.id])
        ]
        if outdated:
            logger.info("Pushing %d local records missing or older in the cloud", len(outdated))
            self.adapter.push_all(outdated)
