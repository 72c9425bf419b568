"""In-process realtime store shared by several simulated devices."""

import logging
from dataclasses import dataclass, field, replace
from typing import Any

from loan_sync.exceptions import PushError
from loan_sync.models import LoanRecord
from loan_sync.sync.base import SnapshotCallback, Subscription, SyncAdapter, SyncStats

logger = logging.getLogger(__name__)


@dataclass
class InMemoryCloud:
    """Document collection keyed by record id.

    Writes overwrite the stored document unconditionally, like a plain
    ``set`` on a realtime database. Every write notifies all subscriptions
    with the full collection.
    """

    documents: dict[str, LoanRecord] = field(default_factory=dict)
    available: bool = True
    _subscriptions: list[Subscription] = field(default_factory=list)

    def write(self, record: LoanRecord) -> None:
        if not self.available:
            raise PushError(f"Store unavailable, record {record.id} not written")
        self.documents[record.id] = replace(record)
        self._notify()

    def snapshot(self) -> list[LoanRecord]:
        return [replace(r) for r in self.documents.values()]

    def attach(self, subscription: Subscription) -> None:
        self._subscriptions.append(subscription)

    def detach(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def _notify(self) -> None:
        for subscription in list(self._subscriptions):
            subscription.deliver(self.snapshot())


class InMemorySyncAdapter(SyncAdapter):
    """Sync adapter over an :class:`InMemoryCloud`."""

    def __init__(self, cloud: InMemoryCloud | None = None) -> None:
        self.cloud = cloud
        self.stats = SyncStats()
        self._connected = False

    def connect(self, config: Any = None) -> bool:
        """Connect to the cloud passed here or at construction."""
        if isinstance(config, InMemoryCloud):
            self.cloud = config
        if self.cloud is None:
            logger.error("Sync connect failed: no in-memory cloud configured")
            return False
        self._connected = True
        return True

    def subscribe(self, on_snapshot: SnapshotCallback) -> Subscription:
        """Subscribe and receive the current snapshot immediately."""
        if not self._connected or self.cloud is None:
            return Subscription(on_snapshot, on_cancel=None)

        subscription = Subscription(on_snapshot, on_cancel=self.cloud.detach)
        self.cloud.attach(subscription)
        self.stats.snapshots += 1
        subscription.deliver(self.cloud.snapshot())
        return subscription

    def push(self, record: LoanRecord) -> bool:
        if not self._connected or self.cloud is None:
            return False
        self.stats.sent += 1
        try:
            self.cloud.write(record)
        except PushError as e:
            self.stats.failed += 1
            logger.error("Push failed: %s", e, extra={"record_id": record.id})
            return False
        self.stats.delivered += 1
        return True

    def is_connected(self) -> bool:
        return self._connected

    def close(self) -> None:
        self._connected = False
