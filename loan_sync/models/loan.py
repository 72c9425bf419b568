"""Loan record models for the portfolio."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from loan_sync.exceptions import InvalidRecordError
from loan_sync.models.enums import LoanStatus

HUNDRED = Decimal("100")


@dataclass
class Installment:
    """One scheduled payment (parcela) of a loan."""

    number: int  # 1..installments_count
    due_date: date
    value: Decimal
    is_paid: bool = False


@dataclass
class LoanRecord:
    """Loan extended to one client.

    ``status`` is a cache of :func:`loan_sync.engine.status.derive_status`
    and ``last_updated`` (epoch milliseconds of the last local mutation) is
    the only input to conflict resolution. Deleted records stay in the set
    as tombstones with ``is_deleted=True``.
    """

    id: str
    name: str
    phone: str
    principal: Decimal  # Amount lent
    installments_count: int
    interest_rate: Decimal  # Total percentage over principal (e.g. 20 for 20%)
    start_date: date
    installments: list[Installment] = field(default_factory=list)
    status: LoanStatus = LoanStatus.ACTIVE
    annotation: str = ""
    observation: str = ""
    is_deleted: bool = False
    last_updated: int = 0

    @property
    def total_receivable(self) -> Decimal:
        """Total expected return: principal plus interest."""
        return self.principal * (1 + self.interest_rate / HUNDRED)

    @property
    def profit(self) -> Decimal:
        """Expected interest earned over the whole loan."""
        return self.total_receivable - self.principal

    @property
    def client_key(self) -> str:
        """Case-normalized name used to group records by client."""
        return " ".join(self.name.split()).casefold()

    @property
    def paid_count(self) -> int:
        """Number of installments already paid."""
        return sum(1 for inst in self.installments if inst.is_paid)

    def installment(self, number: int) -> Installment | None:
        """Return the installment with the given number, if any."""
        for inst in self.installments:
            if inst.number == number:
                return inst
        return None

    def validate(self) -> None:
        """Check structural invariants.

        Raises
        ------
        InvalidRecordError
            If the record cannot belong to a portfolio.
        """
        if not self.id:
            raise InvalidRecordError("Record id must not be empty")
        if self.principal <= 0:
            raise InvalidRecordError(f"Record {self.id}: principal must be positive")
        if self.installments_count < 1:
            raise InvalidRecordError(f"Record {self.id}: installments_count must be >= 1")
        if len(self.installments) != self.installments_count:
            raise InvalidRecordError(
                f"Record {self.id}: expected {self.installments_count} installments, "
                f"got {len(self.installments)}"
            )

        numbers = sorted(inst.number for inst in self.installments)
        if numbers != list(range(1, self.installments_count + 1)):
            raise InvalidRecordError(f"Record {self.id}: installment numbers must be 1..N")

        ordered = sorted(self.installments, key=lambda inst: inst.number)
        for prev, cur in zip(ordered, ordered[1:]):
            if cur.due_date < prev.due_date:
                raise InvalidRecordError(
                    f"Record {self.id}: installment {cur.number} is due before {prev.number}"
                )

        if any(inst.value < 0 for inst in self.installments):
            raise InvalidRecordError(f"Record {self.id}: installment values must be non-negative")
