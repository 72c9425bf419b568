"""Record-set storage and reconciliation."""

from loan_sync.store.imports import ImportPlan, plan_import
from loan_sync.store.local import LocalStateFile
from loan_sync.store.merge import MergeReport, index_by_id, merge, merge_with_report
from loan_sync.store.portfolio import PortfolioStore, StoreChange

__all__ = [
    "ImportPlan",
    "LocalStateFile",
    "MergeReport",
    "PortfolioStore",
    "StoreChange",
    "index_by_id",
    "merge",
    "merge_with_report",
    "plan_import",
]
