"""Import planning for records received through files and share links.

Imports are never applied silently: a plan describes what each mode would do
and the caller confirms one of them.
"""

from dataclasses import dataclass

from loan_sync.models import ChangeSource, LoanRecord, MergeMode
from loan_sync.store.merge import MergeReport, merge_with_report
from loan_sync.store.portfolio import PortfolioStore


@dataclass
class ImportPlan:
    """Preview of an import into ``store``."""

    store: PortfolioStore
    incoming: list[LoanRecord]
    merge_preview: MergeReport
    replace_preview: MergeReport

    @property
    def incoming_count(self) -> int:
        return len({r.id for r in self.incoming})

    def describe(self) -> str:
        """Human-readable summary for the merge/replace prompt."""
        m = self.merge_preview.counts()
        r = self.replace_preview.counts()
        return (
            f"{self.incoming_count} records received. "
            f"Merge: {m['added']} new, {m['updated']} updated, {m['deleted']} deleted. "
            f"Replace: {r['added']} new, {r['updated']} updated, {r['deleted']} removed."
        )

    def apply(self, mode: MergeMode = MergeMode.MERGE) -> MergeReport:
        """Apply the import with the chosen mode."""
        return self.store.apply_incoming(self.incoming, MergeMode(mode), ChangeSource.MERGE)


def plan_import(store: PortfolioStore, incoming: list[LoanRecord]) -> ImportPlan:
    """Preview the outcome of importing ``incoming`` with both modes."""
    local = store.snapshot()
    _, merge_preview = merge_with_report(local, incoming, MergeMode.MERGE)
    _, replace_preview = merge_with_report(local, incoming, MergeMode.REPLACE)
    return ImportPlan(
        store=store,
        incoming=list(incoming),
        merge_preview=merge_preview,
        replace_preview=replace_preview,
    )
