"""Loan lifecycle status derived from installments and the current date."""

from dataclasses import replace
from datetime import date
from typing import Iterable, Sequence

from loan_sync.models import Installment, InstallmentState, LoanRecord, LoanStatus


def derive_status(installments: Sequence[Installment], today: date) -> LoanStatus:
    """Derive a loan's status.

    A fully paid loan is ``COMPLETED`` even when some due dates are in the
    past. Otherwise any unpaid installment due before ``today`` makes the
    loan ``LATE``.

    Parameters
    ----------
    installments : Sequence[Installment]
        Installment schedule of the loan.
    today : date
        Reference date.

    Returns
    -------
    LoanStatus
        Derived status.
    """
    if all(inst.is_paid for inst in installments):
        return LoanStatus.COMPLETED
    if any(not inst.is_paid and inst.due_date < today for inst in installments):
        return LoanStatus.LATE
    return LoanStatus.ACTIVE


def installment_state(installment: Installment, today: date) -> InstallmentState:
    """Classify a single installment for display."""
    if installment.is_paid:
        return InstallmentState.PAID

    days = (installment.due_date - today).days
    if days < 0:
        return InstallmentState.OVERDUE
    if days == 0:
        return InstallmentState.DUE_TODAY
    if days == 1:
        return InstallmentState.DUE_TOMORROW
    return InstallmentState.OPEN


def refresh_status(record: LoanRecord, today: date) -> LoanRecord:
    """Return ``record`` with its cached status re-derived.

    The same object is returned when the status is already current.
    ``last_updated`` is left alone: refreshing a cache is not an edit.
    """
    status = derive_status(record.installments, today)
    if status == record.status:
        return record
    return replace(record, status=status)


def refresh_statuses(records: Iterable[LoanRecord], today: date) -> list[LoanRecord]:
    """Re-derive the cached status of every record."""
    return [refresh_status(record, today) for record in records]
