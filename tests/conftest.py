"""Pytest configuration and fixtures."""

from datetime import date
from decimal import Decimal
from typing import Callable

import pytest

from loan_sync.engine.schedule import build_installments
from loan_sync.models import LoanRecord, LoanStatus

RecordFactory = Callable[..., LoanRecord]


def make_record(
    record_id: str = "loan-001",
    *,
    name: str = "Maria Silva",
    phone: str = "+5511999990000",
    principal: str = "1000",
    count: int = 4,
    value: str = "300",
    start: date = date(2024, 1, 15),
    paid: set[int] | None = None,
    last_updated: int = 100,
    is_deleted: bool = False,
    annotation: str = "",
    status: LoanStatus = LoanStatus.ACTIVE,
) -> LoanRecord:
    """Build a valid record with a monthly schedule."""
    installments = build_installments(start, count, Decimal(value))
    for inst in installments:
        inst.is_paid = inst.number in (paid or set())
    principal_dec = Decimal(principal)
    return LoanRecord(
        id=record_id,
        name=name,
        phone=phone,
        principal=principal_dec,
        installments_count=count,
        interest_rate=(Decimal(value) * count - principal_dec) / principal_dec * 100,
        start_date=start,
        installments=installments,
        status=status,
        annotation=annotation,
        is_deleted=is_deleted,
        last_updated=last_updated,
    )


@pytest.fixture
def today() -> date:
    """Fixed reference date for date-dependent derivations."""
    return date(2024, 4, 20)


@pytest.fixture
def record_factory() -> RecordFactory:
    """Factory for valid loan records."""
    return make_record


@pytest.fixture
def sample_record() -> LoanRecord:
    """Sample four-installment loan: 1000 lent, 4 x 300 due from 2024-02-15."""
    return make_record()


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible sample data."""
    return 42
