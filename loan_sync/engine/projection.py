"""Cumulative monthly recovery projection for the portfolio."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from loan_sync.models import LoanRecord, ProjectionPoint

DEFAULT_HORIZON = 6
CENT = Decimal("0.01")


def _round(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def derive_projection(records: Iterable[LoanRecord]) -> list[ProjectionPoint]:
    """Project cumulative principal and interest recovery per month.

    Each live record contributes ``principal / n`` of principal and
    ``total_receivable / n - principal / n`` of interest to every period
    ``i <= n`` where ``n`` is its installment count. Sums are kept exact and
    rounded to cents only in the emitted points.

    Parameters
    ----------
    records : Iterable[LoanRecord]
        Current record set, tombstones included.

    Returns
    -------
    list[ProjectionPoint]
        One point per period, ``max(installments_count)`` periods or
        ``DEFAULT_HORIZON`` when the portfolio is empty.
    """
    live = [r for r in records if not r.is_deleted and r.installments_count > 0]
    horizon = max((r.installments_count for r in live), default=0) or DEFAULT_HORIZON

    points: list[ProjectionPoint] = []
    principal_acc = Decimal("0")
    interest_acc = Decimal("0")

    for period in range(1, horizon + 1):
        for record in live:
            if period > record.installments_count:
                continue
            n = record.installments_count
            principal_part = record.principal / n
            principal_acc += principal_part
            interest_acc += record.total_receivable / n - principal_part

        points.append(
            ProjectionPoint(
                period=period,
                cumulative_principal=_round(principal_acc),
                cumulative_interest=_round(interest_acc),
                cumulative_total=_round(principal_acc + interest_acc),
            )
        )

    return points
