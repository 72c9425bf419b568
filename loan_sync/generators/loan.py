"""Sample loan portfolio generator."""

from dataclasses import replace
from datetime import date, datetime, time
from decimal import Decimal
from typing import Iterator

from loan_sync.engine.schedule import create_record
from loan_sync.engine.status import refresh_status
from loan_sync.generators.base import BaseGenerator
from loan_sync.models import LoanRecord


class LoanRecordGenerator(BaseGenerator):
    """Generate realistic informal loans with payment history."""

    TERMS = [3, 4, 5, 6, 8, 10, 12]

    def __init__(
        self,
        seed: int | None = None,
        locale: str = "pt_BR",
        on_time_rate: float = 0.85,
    ) -> None:
        super().__init__(seed, locale)
        self.on_time_rate = on_time_rate

    def generate(self, today: date) -> LoanRecord:
        """Generate one loan started up to a year before ``today``.

        Installments due before ``today`` are marked paid with probability
        ``on_time_rate``; later ones stay unpaid.
        """
        principal = self.amount(500, 10_000)
        term = self.random.choice(self.TERMS)
        # 10-60% total interest over the loan
        total = principal * (1 + Decimal(self.random.randint(10, 60)) / 100)
        installment_value = (total / term).quantize(Decimal("0.01"))
        start_date = self.past_date(today, 365)

        record = create_record(
            name=self.fake.name(),
            phone=self.fake.phone_number(),
            principal=principal,
            installments_count=term,
            installment_value=installment_value,
            start_date=start_date,
            record_id=self.fake.uuid4(),
        )

        installments = [
            replace(inst, is_paid=inst.due_date < today and self.random.random() < self.on_time_rate)
            for inst in record.installments
        ]
        created = datetime.combine(start_date, time(12, 0))
        record = replace(
            record,
            installments=installments,
            last_updated=int(created.timestamp() * 1000),
        )
        return refresh_status(record, today)

    def generate_portfolio(self, count: int, today: date) -> Iterator[LoanRecord]:
        """Yield ``count`` sample loans."""
        for _ in range(count):
            yield self.generate(today)
