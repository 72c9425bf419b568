"""Sample data generators."""

from loan_sync.generators.loan import LoanRecordGenerator

__all__ = ["LoanRecordGenerator"]
