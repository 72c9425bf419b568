"""Versioned in-memory portfolio store with last-write-wins local writes."""

import logging
import time
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Callable, Iterable

from loan_sync.engine.status import derive_status, refresh_statuses
from loan_sync.exceptions import InvalidRecordError, QuotaError, RecordNotFoundError
from loan_sync.models import ChangeSource, LoanRecord, LoanStatus, MergeMode
from loan_sync.store.local import LocalStateFile
from loan_sync.store.merge import MergeReport, merge_with_report

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class StoreChange:
    """Notification sent to store listeners after every state change."""

    version: int
    source: ChangeSource
    changed: tuple[LoanRecord, ...]  # Records written or replaced by this change
    records: tuple[LoanRecord, ...]  # Full record set after the change


Listener = Callable[[StoreChange], None]


@dataclass
class PortfolioStore:
    """Explicit record-set holder shared by reference between components.

    Every local mutation rewrites ``last_updated`` so it wins over any older
    copy on other devices, persists the full set when ``storage`` is set and
    notifies listeners. ``version`` increases on every state change.

    Listeners may write to the store. Changes they cause are queued and
    delivered, in version order, after every listener has seen the current
    change.
    """

    records: list[LoanRecord] = field(default_factory=list)
    storage: LocalStateFile | None = None
    clock: Callable[[], int] = now_ms
    today: Callable[[], date] = date.today
    version: int = 0
    _listeners: list[Listener] = field(default_factory=list)
    _queue: list[StoreChange] = field(default_factory=list, repr=False)
    _notifying: bool = field(default=False, repr=False)

    @classmethod
    def from_storage(cls, storage: LocalStateFile, **kwargs) -> "PortfolioStore":
        """Create a store from the records persisted in ``storage``."""
        return cls(records=storage.load(), storage=storage, **kwargs)

    # Listeners
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener and return a function that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # Queries
    def get(self, record_id: str) -> LoanRecord | None:
        """Get a record by id, tombstones included."""
        for record in self.records:
            if record.id == record_id:
                return record
        return None

    def live(self) -> list[LoanRecord]:
        """Records that are not deleted."""
        return [r for r in self.records if not r.is_deleted]

    def snapshot(self) -> list[LoanRecord]:
        """Copy of the full record set, tombstones included."""
        return list(self.records)

    # Local mutations
    def add(self, record: LoanRecord) -> LoanRecord:
        """Add a newly created record at the top of the portfolio."""
        if self.get(record.id) is not None:
            raise InvalidRecordError(f"Record {record.id} already exists")
        record.validate()

        stored = replace(
            record,
            status=LoanStatus.ACTIVE,
            is_deleted=False,
            last_updated=max(self.clock(), record.last_updated + 1),
        )
        self._commit([stored, *self.records], ChangeSource.LOCAL, [stored])
        return stored

    def update(self, record: LoanRecord) -> LoanRecord:
        """Replace a live record with an edited copy."""
        current = self._require_live(record.id)
        record.validate()
        return self._write(current, record)

    def toggle_payment(self, record_id: str, number: int) -> LoanRecord:
        """Flip the paid flag of one installment."""
        current = self._require_live(record_id)
        if current.installment(number) is None:
            raise RecordNotFoundError(f"Record {record_id} has no installment {number}")

        installments = [
            replace(inst, is_paid=not inst.is_paid) if inst.number == number else replace(inst)
            for inst in current.installments
        ]
        return self._write(current, replace(current, installments=installments))

    def set_notes(
        self,
        record_id: str,
        annotation: str | None = None,
        observation: str | None = None,
    ) -> LoanRecord:
        """Edit the free-text notes of a record."""
        current = self._require_live(record_id)
        edited = replace(
            current,
            annotation=current.annotation if annotation is None else annotation,
            observation=current.observation if observation is None else observation,
        )
        return self._write(current, edited)

    def delete(self, record_id: str) -> LoanRecord:
        """Mark a record deleted, keeping it as a tombstone."""
        current = self._require_live(record_id)
        return self._write(current, replace(current, is_deleted=True))

    # Reconciliation
    def apply_incoming(
        self,
        incoming: Iterable[LoanRecord],
        mode: MergeMode = MergeMode.MERGE,
        source: ChangeSource = ChangeSource.MERGE,
    ) -> MergeReport:
        """Reconcile a record set received from another device."""
        mode = MergeMode(mode)
        merged, report = merge_with_report(self.records, incoming, mode)
        if not report.changed:
            logger.debug("Incoming set already reflected locally (%s)", report.counts())
            return report

        by_id = {r.id: r for r in merged}
        changed = [by_id[rid] for rid in (*report.added, *report.updated, *report.deleted) if rid in by_id]
        self._commit(merged, source, changed)
        logger.info(
            "Applied incoming records: %s",
            report.counts(),
            extra={"source": source.value, "mode": mode.value, "version": self.version},
        )
        return report

    def refresh_statuses(self) -> int:
        """Re-derive cached statuses for the current day.

        Returns the number of records whose status changed. Timestamps are
        not bumped.
        """
        refreshed = refresh_statuses(self.records, self.today())
        count = sum(1 for old, new in zip(self.records, refreshed) if old is not new)
        if count:
            self.records = refreshed
            self.version += 1
            self._persist()
        return count

    # Internals
    def _require_live(self, record_id: str) -> LoanRecord:
        record = self.get(record_id)
        if record is None or record.is_deleted:
            raise RecordNotFoundError(f"Record {record_id} not found")
        return record

    def _write(self, current: LoanRecord, edited: LoanRecord) -> LoanRecord:
        stored = replace(
            edited,
            id=current.id,
            status=derive_status(edited.installments, self.today()),
            last_updated=max(self.clock(), current.last_updated + 1),
        )
        records = [stored if r.id == current.id else r for r in self.records]
        self._commit(records, ChangeSource.LOCAL, [stored])
        return stored

    def _commit(
        self,
        records: list[LoanRecord],
        source: ChangeSource,
        changed: list[LoanRecord],
    ) -> None:
        self.records = refresh_statuses(records, self.today())
        self.version += 1
        self._persist()

        by_id = {r.id: r for r in self.records}
        change = StoreChange(
            version=self.version,
            source=source,
            changed=tuple(by_id.get(r.id, r) for r in changed),
            records=tuple(self.records),
        )
        self._queue.append(change)
        if self._notifying:
            # A listener wrote to the store; its change goes out after this one
            return

        self._notifying = True
        try:
            while self._queue:
                change = self._queue.pop(0)
                for listener in list(self._listeners):
                    listener(change)
        finally:
            self._notifying = False
            self._queue.clear()

    def _persist(self) -> None:
        if self.storage is None:
            return
        try:
            self.storage.save(self.records)
        except QuotaError as e:
            logger.error("Local state not saved: %s", e)
