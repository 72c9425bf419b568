"""Reconciliation of divergent copies of the record set.

Two strategies are supported:

- ``MergeMode.REPLACE``: the incoming set supersedes the local one. Used when
  restoring a backup and for snapshots of the realtime mirror.
- ``MergeMode.MERGE``: per-record last-write-wins keyed by ``id``. The copy
  with the greater ``last_updated`` wins; on a tie the local copy is kept.
  Tombstones (``is_deleted=True``) compete on timestamp like any other edit.

Merging never mutates its inputs and never raises on well-formed records.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable

from loan_sync.models import LoanRecord, MergeMode

logger = logging.getLogger(__name__)


@dataclass
class MergeReport:
    """What a merge did to the local set, by record id."""

    added: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    kept: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.updated or self.deleted)

    def counts(self) -> dict[str, int]:
        return {
            "added": len(self.added),
            "updated": len(self.updated),
            "deleted": len(self.deleted),
            "kept": len(self.kept),
        }


def timestamp_of(record: LoanRecord) -> int:
    """Conflict-resolution timestamp; records without one are oldest."""
    return record.last_updated or 0


def newer(candidate: LoanRecord, current: LoanRecord) -> bool:
    """Whether ``candidate`` strictly beats ``current``."""
    return timestamp_of(candidate) > timestamp_of(current)


def index_by_id(records: Iterable[LoanRecord]) -> dict[str, LoanRecord]:
    """Index records by id, collapsing duplicates with last-write-wins.

    Among duplicates with equal timestamps the first occurrence is kept.
    """
    index: dict[str, LoanRecord] = {}
    for record in records:
        current = index.get(record.id)
        if current is None or newer(record, current):
            index[record.id] = record
    return index


def merge_with_report(
    local: Iterable[LoanRecord],
    incoming: Iterable[LoanRecord],
    mode: MergeMode = MergeMode.MERGE,
) -> tuple[list[LoanRecord], MergeReport]:
    """Reconcile ``incoming`` into ``local``.

    Parameters
    ----------
    local : Iterable[LoanRecord]
        Records held by this device.
    incoming : Iterable[LoanRecord]
        Records from a snapshot, export file or share link.
    mode : MergeMode
        ``MERGE`` (last-write-wins) or ``REPLACE``.

    Returns
    -------
    tuple[list[LoanRecord], MergeReport]
        Reconciled records (local order first, then records new to this
        device in incoming order) and a report of what changed.
    """
    local_index = index_by_id(local)
    incoming_index = index_by_id(incoming)
    report = MergeReport()

    if MergeMode(mode) is MergeMode.REPLACE:
        for record_id, record in incoming_index.items():
            current = local_index.get(record_id)
            if current is None:
                report.added.append(record_id)
            elif current == record:
                report.kept.append(record_id)
            elif record.is_deleted and not current.is_deleted:
                report.deleted.append(record_id)
            else:
                report.updated.append(record_id)
        # Dropped local records are reported as deleted
        report.deleted.extend(rid for rid in local_index if rid not in incoming_index)
        return list(incoming_index.values()), report

    result: list[LoanRecord] = []
    for record_id, current in local_index.items():
        candidate = incoming_index.get(record_id)
        if candidate is not None and newer(candidate, current):
            result.append(candidate)
            if candidate.is_deleted and not current.is_deleted:
                report.deleted.append(record_id)
            else:
                report.updated.append(record_id)
        else:
            result.append(current)
            report.kept.append(record_id)

    for record_id, candidate in incoming_index.items():
        if record_id not in local_index:
            result.append(candidate)
            report.added.append(record_id)

    return result, report


def merge(
    local: Iterable[LoanRecord],
    incoming: Iterable[LoanRecord],
    mode: MergeMode = MergeMode.MERGE,
) -> list[LoanRecord]:
    """Reconcile ``incoming`` into ``local`` and return the new record set."""
    result, report = merge_with_report(local, incoming, mode)
    logger.debug("Merge (%s): %s", MergeMode(mode).value, report.counts())
    return result
