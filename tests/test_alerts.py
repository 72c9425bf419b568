"""Tests for due/overdue alerts."""

from datetime import date, timedelta
from decimal import Decimal

from loan_sync.engine.alerts import derive_alerts
from loan_sync.models import AlertSeverity, Installment, LoanRecord


def _single(record_id: str, due: date, paid: bool = False, deleted: bool = False) -> LoanRecord:
    return LoanRecord(
        id=record_id,
        name=f"Client {record_id}",
        phone="+55119000000",
        principal=Decimal("100"),
        installments_count=1,
        interest_rate=Decimal("20"),
        start_date=due - timedelta(days=30),
        installments=[Installment(number=1, due_date=due, value=Decimal("120"), is_paid=paid)],
        is_deleted=deleted,
    )


class TestWindowBoundaries:
    """Alert window boundaries."""

    def test_due_today(self, today) -> None:
        alerts = derive_alerts([_single("a", today)], warning_days=1, today=today)

        assert len(alerts) == 1
        assert alerts[0].severity == AlertSeverity.DUE
        assert alerts[0].days_until_due == 0

    def test_due_at_window_edge_included(self, today) -> None:
        alerts = derive_alerts([_single("a", today + timedelta(days=3))], warning_days=3, today=today)
        assert [a.days_until_due for a in alerts] == [3]

    def test_due_past_window_excluded(self, today) -> None:
        alerts = derive_alerts([_single("a", today + timedelta(days=4))], warning_days=3, today=today)
        assert alerts == []

    def test_one_day_overdue(self, today) -> None:
        alerts = derive_alerts([_single("a", today - timedelta(days=1))], warning_days=1, today=today)

        assert alerts[0].severity == AlertSeverity.OVERDUE
        assert alerts[0].days_until_due == -1

    def test_five_days_overdue(self, today) -> None:
        alerts = derive_alerts([_single("a", today - timedelta(days=5))], warning_days=1, today=today)

        assert len(alerts) == 1
        assert alerts[0].severity == AlertSeverity.OVERDUE
        assert alerts[0].days_until_due == -5

    def test_negative_window_counts_as_zero(self, today) -> None:
        records = [_single("a", today), _single("b", today + timedelta(days=1))]
        alerts = derive_alerts(records, warning_days=-2, today=today)
        assert [a.record_id for a in alerts] == ["a"]


class TestFiltering:
    """Records and installments that never alert."""

    def test_paid_installments_skipped(self, today) -> None:
        assert derive_alerts([_single("a", today, paid=True)], 1, today) == []

    def test_deleted_records_skipped(self, today) -> None:
        assert derive_alerts([_single("a", today - timedelta(days=3), deleted=True)], 1, today) == []

    def test_alert_fields(self, today) -> None:
        record = _single("a", today)
        alert = derive_alerts([record], 1, today)[0]

        assert alert.record_id == "a"
        assert alert.client_name == "Client a"
        assert alert.phone == record.phone
        assert alert.installment_number == 1
        assert alert.value == Decimal("120")
        assert alert.due_date == today


class TestOrdering:
    """Alert ordering."""

    def test_overdue_before_due(self, today) -> None:
        records = [
            _single("due", today),
            _single("late", today - timedelta(days=1)),
        ]
        alerts = derive_alerts(records, 2, today)
        assert [a.record_id for a in alerts] == ["late", "due"]

    def test_ascending_within_groups(self, today) -> None:
        records = [
            _single("late-1", today - timedelta(days=1)),
            _single("due-2", today + timedelta(days=2)),
            _single("late-9", today - timedelta(days=9)),
            _single("due-0", today),
        ]
        alerts = derive_alerts(records, 5, today)
        assert [a.record_id for a in alerts] == ["late-9", "late-1", "due-0", "due-2"]

    def test_ties_keep_record_order(self, today) -> None:
        records = [_single(rid, today) for rid in ("c", "a", "b")]
        alerts = derive_alerts(records, 1, today)
        assert [a.record_id for a in alerts] == ["c", "a", "b"]

    def test_multiple_installments_of_one_record(self, record_factory, today) -> None:
        # Due 2024-02-15, 03-15, 04-15 (overdue) and 05-15 (outside window)
        alerts = derive_alerts([record_factory(paid={2})], 1, today)

        assert [a.installment_number for a in alerts] == [1, 3]
        assert [a.days_until_due for a in alerts] == [-65, -5]

    def test_recomputed_per_call(self, today) -> None:
        record = _single("a", today + timedelta(days=2))

        assert derive_alerts([record], 1, today) == []
        assert len(derive_alerts([record], 1, today + timedelta(days=1))) == 1
