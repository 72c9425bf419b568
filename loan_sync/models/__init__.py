"""Domain models for the loan portfolio."""

from loan_sync.models.enums import (
    AlertSeverity,
    ChangeSource,
    InstallmentState,
    LoanStatus,
    MergeMode,
)
from loan_sync.models.loan import Installment, LoanRecord
from loan_sync.models.views import Alert, PortfolioSummary, ProjectionPoint

__all__ = [
    "Alert",
    "AlertSeverity",
    "ChangeSource",
    "Installment",
    "InstallmentState",
    "LoanRecord",
    "LoanStatus",
    "MergeMode",
    "PortfolioSummary",
    "ProjectionPoint",
]
