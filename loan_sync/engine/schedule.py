"""Installment schedule generation for new and edited loans."""

import uuid
from dataclasses import replace
from datetime import date
from decimal import Decimal

from dateutil.relativedelta import relativedelta

from loan_sync.models import Installment, LoanRecord, LoanStatus
from loan_sync.models.loan import HUNDRED


def generate_id() -> str:
    """Return a new globally unique record id."""
    return uuid.uuid4().hex


def derive_interest_rate(principal: Decimal, total_receivable: Decimal) -> Decimal:
    """Percentage earned over principal; negative when the loan loses money."""
    if principal <= 0:
        return Decimal("0")
    return (total_receivable - principal) / principal * HUNDRED


def build_installments(
    start_date: date,
    count: int,
    value: Decimal,
    previous: list[Installment] | None = None,
) -> list[Installment]:
    """Build a schedule of ``count`` monthly installments.

    Installment ``i`` is due ``i`` months after ``start_date``; days past
    the end of a shorter month are clamped to its last day. Paid flags of
    ``previous`` installments with the same number are preserved, so editing
    a loan does not forget payments already received.
    """
    paid = {inst.number: inst.is_paid for inst in previous or []}
    return [
        Installment(
            number=i,
            due_date=start_date + relativedelta(months=i),
            value=value,
            is_paid=paid.get(i, False),
        )
        for i in range(1, count + 1)
    ]


def create_record(
    name: str,
    phone: str,
    principal: Decimal,
    installments_count: int,
    installment_value: Decimal,
    start_date: date,
    *,
    annotation: str = "",
    observation: str = "",
    record_id: str | None = None,
) -> LoanRecord:
    """Create a new live ``ACTIVE`` loan record.

    ``last_updated`` is left at 0; the portfolio store stamps it when the
    record is added.
    """
    record = LoanRecord(
        id=record_id or generate_id(),
        name=name.strip(),
        phone=phone.strip(),
        principal=principal,
        installments_count=installments_count,
        interest_rate=derive_interest_rate(principal, installment_value * installments_count),
        start_date=start_date,
        installments=build_installments(start_date, installments_count, installment_value),
        status=LoanStatus.ACTIVE,
        annotation=annotation,
        observation=observation,
    )
    record.validate()
    return record


def reschedule(
    record: LoanRecord,
    *,
    principal: Decimal | None = None,
    installments_count: int | None = None,
    installment_value: Decimal | None = None,
    start_date: date | None = None,
) -> LoanRecord:
    """Return an edited copy of ``record`` with its schedule rebuilt."""
    principal = record.principal if principal is None else principal
    count = record.installments_count if installments_count is None else installments_count
    start = record.start_date if start_date is None else start_date
    if installment_value is None:
        installment_value = record.installments[0].value if record.installments else Decimal("0")

    edited = replace(
        record,
        principal=principal,
        installments_count=count,
        start_date=start,
        interest_rate=derive_interest_rate(principal, installment_value * count),
        installments=build_installments(start, count, installment_value, record.installments),
    )
    edited.validate()
    return edited
