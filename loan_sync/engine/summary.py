"""Portfolio headline figures and client grouping."""

from decimal import Decimal
from typing import Iterable

from loan_sync.models import LoanRecord, PortfolioSummary
from loan_sync.models.loan import HUNDRED


def summarize_portfolio(records: Iterable[LoanRecord]) -> PortfolioSummary:
    """Compute invested, expected and received totals for live records."""
    live = [r for r in records if not r.is_deleted]

    total_invested = sum((r.principal for r in live), Decimal("0"))
    total_expected = sum((r.total_receivable for r in live), Decimal("0"))
    total_received = sum(
        (inst.value for r in live for inst in r.installments if inst.is_paid),
        Decimal("0"),
    )
    total_profit = total_expected - total_invested
    average_roi = total_profit / total_invested * HUNDRED if total_invested else Decimal("0")

    return PortfolioSummary(
        total_invested=total_invested,
        total_revenue_expected=total_expected,
        total_profit=total_profit,
        total_received=total_received,
        active_clients=len(live),
        average_roi=average_roi,
    )


def group_by_client(records: Iterable[LoanRecord]) -> dict[str, list[LoanRecord]]:
    """Group live records by case-normalized client name.

    Groups keep the order in which each client first appears.
    """
    groups: dict[str, list[LoanRecord]] = {}
    for record in records:
        if record.is_deleted:
            continue
        groups.setdefault(record.client_key, []).append(record)
    return groups
