"""Derived view models computed from the record set."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from loan_sync.models.enums import AlertSeverity


@dataclass(frozen=True)
class Alert:
    """Due or overdue installment needing attention."""

    record_id: str
    client_name: str
    phone: str
    installment_number: int
    value: Decimal
    due_date: date
    days_until_due: int  # Negative when overdue
    severity: AlertSeverity


@dataclass(frozen=True)
class ProjectionPoint:
    """Cumulative recovery after ``period`` months."""

    period: int
    cumulative_principal: Decimal
    cumulative_interest: Decimal
    cumulative_total: Decimal

    @property
    def label(self) -> str:
        return f"Month {self.period}"


@dataclass(frozen=True)
class PortfolioSummary:
    """Headline figures for the live portfolio."""

    total_invested: Decimal
    total_revenue_expected: Decimal
    total_profit: Decimal
    total_received: Decimal
    active_clients: int  # Live records, one per loan
    average_roi: Decimal  # Percentage
