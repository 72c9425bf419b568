"""Contract for realtime stores that mirror the record set."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from loan_sync.models import LoanRecord

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[list[LoanRecord]], None]


class Subscription:
    """Cancellable handle for a snapshot subscription.

    ``cancel()`` is idempotent; once it returns the callback is never
    invoked again.
    """

    def __init__(
        self,
        callback: SnapshotCallback,
        on_cancel: Callable[["Subscription"], None] | None = None,
    ) -> None:
        self._callback = callback
        self._on_cancel = on_cancel
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def deliver(self, records: list[LoanRecord]) -> None:
        """Invoke the callback with a snapshot unless cancelled."""
        if self._active:
            self._callback(list(records))

    def cancel(self) -> None:
        """Stop receiving snapshots."""
        if not self._active:
            return
        self._active = False
        if self._on_cancel is not None:
            self._on_cancel(self)
        logger.debug("Subscription cancelled")


@dataclass
class SyncStats:
    """Track outbound push statistics."""

    sent: int = 0
    delivered: int = 0
    failed: int = 0
    snapshots: int = 0

    @property
    def success_rate(self) -> float:
        """Calculate success rate."""
        total = self.delivered + self.failed
        return self.delivered / total if total > 0 else 0.0


class SyncAdapter(ABC):
    """Realtime store exchanging whole-record snapshots.

    Implementations catch their own transport failures: ``connect`` returns
    False instead of raising and ``push``/``push_all`` return False after
    logging the error.
    """

    @abstractmethod
    def connect(self, config: Any) -> bool:
        """Connect to the store; False when the configuration is unusable."""

    @abstractmethod
    def subscribe(self, on_snapshot: SnapshotCallback) -> Subscription:
        """Receive the store's full record set whenever it changes."""

    @abstractmethod
    def push(self, record: LoanRecord) -> bool:
        """Write one record; False when the write was not accepted."""

    def push_all(self, records: Iterable[LoanRecord]) -> bool:
        """Write every record; False when any write was not accepted."""
        ok = True
        for record in records:
            ok = self.push(record) and ok
        return ok

    @abstractmethod
    def is_connected(self) -> bool:
        """Whether the adapter is connected."""

    def close(self) -> None:
        """Release transport resources."""
