"""Due and overdue installment alerts."""

from datetime import date
from typing import Iterable

from loan_sync.models import Alert, AlertSeverity, LoanRecord

_SEVERITY_RANK = {AlertSeverity.OVERDUE: 0, AlertSeverity.DUE: 1}


def derive_alerts(
    records: Iterable[LoanRecord],
    warning_days: int,
    today: date,
) -> list[Alert]:
    """Collect alerts for unpaid installments of live records.

    Installments past due are ``OVERDUE``; installments due within
    ``warning_days`` (inclusive, today counts as 0) are ``DUE``; later ones
    are skipped. Overdue alerts come first, each group ordered by
    ``days_until_due`` ascending. Ties keep record iteration order.

    Parameters
    ----------
    records : Iterable[LoanRecord]
        Current record set, tombstones included.
    warning_days : int
        Size of the warning window in days. Negative values count as 0.
    today : date
        Reference date.

    Returns
    -------
    list[Alert]
        Ordered alerts.
    """
    window = max(warning_days, 0)
    alerts: list[Alert] = []

    for record in records:
        if record.is_deleted:
            continue
        for inst in sorted(record.installments, key=lambda i: i.number):
            if inst.is_paid:
                continue

            days_until_due = (inst.due_date - today).days
            if days_until_due < 0:
                severity = AlertSeverity.OVERDUE
            elif days_until_due <= window:
                severity = AlertSeverity.DUE
            else:
                continue

            alerts.append(
                Alert(
                    record_id=record.id,
                    client_name=record.name,
                    phone=record.phone,
                    installment_number=inst.number,
                    value=inst.value,
                    due_date=inst.due_date,
                    days_until_due=days_until_due,
                    severity=severity,
                )
            )

    # sorted() is stable, so equal keys keep record order
    return sorted(alerts, key=lambda a: (_SEVERITY_RANK[a.severity], a.days_until_due))
