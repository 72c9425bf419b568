"""Tests for local state, the portfolio store and import plans."""

import json
import logging
from datetime import date
from pathlib import Path
from unittest.mock import patch

import pytest

from loan_sync.exceptions import InvalidRecordError, QuotaError, RecordNotFoundError
from loan_sync.models import ChangeSource, LoanStatus, MergeMode
from loan_sync.store import LocalStateFile, PortfolioStore, plan_import
from loan_sync.store.portfolio import StoreChange
from loan_sync.transfer import record_to_dict


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: int = 1_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock, today: date) -> PortfolioStore:
    """Create an in-memory store with a fixed clock and calendar."""
    return PortfolioStore(clock=clock, today=lambda: today)


class TestLocalStateFile:
    """Tests for LocalStateFile."""

    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        assert LocalStateFile(tmp_path / "state.json").load() == []

    def test_save_and_load(self, tmp_path: Path, record_factory) -> None:
        state = LocalStateFile(tmp_path / "nested" / "state.json")
        records = [record_factory("a"), record_factory("b", is_deleted=True)]

        state.save(records)

        assert state.load() == records
        assert not (tmp_path / "nested" / "state.json.tmp").exists()

    def test_records_stored_under_key(self, tmp_path: Path, record_factory) -> None:
        path = tmp_path / "state.json"
        LocalStateFile(path, key="loans").save([record_factory("a")])

        document = json.loads(path.read_text(encoding="utf-8"))
        assert [d["id"] for d in document["loans"]] == ["a"]

    def test_other_keys_preserved(self, tmp_path: Path, record_factory) -> None:
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"theme": "dark", "clients": []}), encoding="utf-8")

        LocalStateFile(path).save([record_factory("a")])

        assert json.loads(path.read_text(encoding="utf-8"))["theme"] == "dark"

    def test_malformed_json_fails_open(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        path = tmp_path / "state.json"
        path.write_text("{broken", encoding="utf-8")

        with caplog.at_level(logging.WARNING):
            assert LocalStateFile(path).load() == []
        assert "unreadable" in caplog.text

    def test_invalid_record_fails_open(self, tmp_path: Path, record_factory) -> None:
        entry = record_to_dict(record_factory("a"))
        del entry["id"]
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"clients": [entry]}), encoding="utf-8")

        assert LocalStateFile(path).load() == []

    def test_malformed_integer_fails_open(self, tmp_path: Path, record_factory) -> None:
        entry = record_to_dict(record_factory("a"))
        entry["lastUpdated"] = "--1"
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"clients": [entry]}), encoding="utf-8")

        assert LocalStateFile(path).load() == []
        assert PortfolioStore.from_storage(LocalStateFile(path)).records == []

    def test_write_failure_raises_quota_error(self, tmp_path: Path, record_factory) -> None:
        state = LocalStateFile(tmp_path / "state.json")

        with patch.object(Path, "write_text", side_effect=OSError("disk full")):
            with pytest.raises(QuotaError, match="disk full"):
                state.save([record_factory("a")])


class TestLocalMutations:
    """Tests for PortfolioStore local writes."""

    def test_add_prepends_and_stamps(self, store: PortfolioStore, clock: FakeClock, record_factory) -> None:
        store.add(record_factory("a", last_updated=0))
        clock.now = 2_000
        added = store.add(record_factory("b", last_updated=0))

        assert [r.id for r in store.records] == ["b", "a"]
        assert added.last_updated == 2_000
        assert store.version == 2

    def test_add_duplicate_rejected(self, store: PortfolioStore, record_factory) -> None:
        store.add(record_factory("a"))
        with pytest.raises(InvalidRecordError):
            store.add(record_factory("a"))

    def test_add_invalid_rejected(self, store: PortfolioStore, record_factory) -> None:
        record = record_factory("a")
        record.installments.pop()
        with pytest.raises(InvalidRecordError):
            store.add(record)
        assert store.records == []

    def test_toggle_payment(self, store: PortfolioStore, clock: FakeClock, record_factory) -> None:
        store.add(record_factory("a", last_updated=0))
        clock.now = 5_000

        toggled = store.toggle_payment("a", 2)

        assert toggled.installment(2).is_paid is True
        assert toggled.last_updated == 5_000
        assert store.get("a") is toggled

    def test_toggle_twice_restores_flag(self, store: PortfolioStore, record_factory) -> None:
        store.add(record_factory("a"))
        store.toggle_payment("a", 1)
        assert store.toggle_payment("a", 1).installment(1).is_paid is False

    def test_timestamp_strictly_increases_with_stalled_clock(
        self, store: PortfolioStore, record_factory
    ) -> None:
        first = store.add(record_factory("a", last_updated=0))
        second = store.set_notes("a", annotation="called")
        third = store.set_notes("a", observation="pays on fridays")

        assert first.last_updated < second.last_updated < third.last_updated
        assert third.annotation == "called"

    def test_paying_everything_completes(self, store: PortfolioStore, record_factory) -> None:
        store.add(record_factory("a"))
        for number in range(1, 5):
            record = store.toggle_payment("a", number)
        assert record.status == LoanStatus.COMPLETED

    def test_overdue_record_is_late_after_commit(self, store: PortfolioStore, record_factory) -> None:
        store.add(record_factory("a"))
        assert store.get("a").status == LoanStatus.LATE

    def test_unknown_installment(self, store: PortfolioStore, record_factory) -> None:
        store.add(record_factory("a"))
        with pytest.raises(RecordNotFoundError):
            store.toggle_payment("a", 9)

    def test_update_keeps_id(self, store: PortfolioStore, record_factory) -> None:
        store.add(record_factory("a"))
        edited = store.update(record_factory("a", name="Maria S. Souza"))

        assert edited.name == "Maria S. Souza"
        assert len(store.records) == 1

    def test_delete_keeps_tombstone(self, store: PortfolioStore, clock: FakeClock, record_factory) -> None:
        store.add(record_factory("a"))
        clock.now = 9_000

        tombstone = store.delete("a")

        assert tombstone.is_deleted is True
        assert tombstone.last_updated == 9_000
        assert store.get("a") is tombstone
        assert store.live() == []

    def test_deleted_records_cannot_be_edited(self, store: PortfolioStore, record_factory) -> None:
        store.add(record_factory("a"))
        store.delete("a")
        with pytest.raises(RecordNotFoundError):
            store.toggle_payment("a", 1)

    def test_missing_record(self, store: PortfolioStore) -> None:
        with pytest.raises(RecordNotFoundError):
            store.delete("nope")


class TestListenersAndPersistence:
    """Tests for change notification and local persistence."""

    def test_listener_receives_change(self, store: PortfolioStore, record_factory) -> None:
        changes: list[StoreChange] = []
        store.subscribe(changes.append)

        added = store.add(record_factory("a"))

        assert len(changes) == 1
        assert changes[0].source == ChangeSource.LOCAL
        assert changes[0].changed == (store.get("a"),)
        assert changes[0].changed[0].id == added.id
        assert changes[0].version == store.version

    def test_unsubscribe(self, store: PortfolioStore, record_factory) -> None:
        changes: list[StoreChange] = []
        remove = store.subscribe(changes.append)
        remove()
        remove()

        store.add(record_factory("a"))
        assert changes == []

    def test_write_from_listener_is_delivered_in_order(self, store: PortfolioStore, record_factory) -> None:
        """A change made by a listener reaches later listeners after the current one."""
        store.add(record_factory("a"))

        def pay_first(change: StoreChange) -> None:
            if not store.get("a").installment(1).is_paid:
                store.toggle_payment("a", 1)

        changes: list[StoreChange] = []
        store.subscribe(pay_first)
        store.subscribe(changes.append)

        store.set_notes("a", annotation="cousin")

        assert [c.version for c in changes] == [2, 3]
        first, second = changes
        assert first.records[0].annotation == "cousin"
        assert first.records[0].installment(1).is_paid is False
        assert second.records[0].installment(1).is_paid is True
        assert store.version == 3

    def test_every_write_persists(self, tmp_path: Path, clock: FakeClock, record_factory) -> None:
        state = LocalStateFile(tmp_path / "state.json")
        store = PortfolioStore(storage=state, clock=clock)

        store.add(record_factory("a"))
        store.toggle_payment("a", 1)

        reloaded = PortfolioStore.from_storage(state)
        assert reloaded.get("a").installment(1).is_paid is True

    def test_quota_error_is_logged_not_raised(
        self, tmp_path: Path, record_factory, caplog: pytest.LogCaptureFixture
    ) -> None:
        state = LocalStateFile(tmp_path / "state.json")
        store = PortfolioStore(storage=state)

        with patch.object(state, "save", side_effect=QuotaError("quota exceeded")):
            with caplog.at_level(logging.ERROR):
                store.add(record_factory("a"))

        assert store.get("a") is not None
        assert "quota exceeded" in caplog.text

    def test_refresh_statuses_does_not_bump_timestamps(self, record_factory, today: date) -> None:
        store = PortfolioStore(records=[record_factory("a")], today=lambda: today)

        assert store.refresh_statuses() == 1
        assert store.get("a").status == LoanStatus.LATE
        assert store.get("a").last_updated == 100
        assert store.refresh_statuses() == 0


class TestApplyIncoming:
    """Tests for PortfolioStore.apply_incoming."""

    def test_merge_applies_newer(self, store: PortfolioStore, record_factory) -> None:
        store.records = [record_factory("a", last_updated=10)]

        report = store.apply_incoming([record_factory("a", last_updated=20, annotation="remote")])

        assert report.updated == ["a"]
        assert store.get("a").annotation == "remote"
        assert store.get("a").last_updated == 20

    def test_unchanged_merge_does_not_notify(self, store: PortfolioStore, record_factory) -> None:
        store.records = [record_factory("a", last_updated=10)]
        changes: list[StoreChange] = []
        store.subscribe(changes.append)

        store.apply_incoming([record_factory("a", last_updated=5)])

        assert changes == []
        assert store.version == 0

    def test_source_and_changed_records(self, store: PortfolioStore, record_factory) -> None:
        store.records = [record_factory("a")]
        changes: list[StoreChange] = []
        store.subscribe(changes.append)

        store.apply_incoming([record_factory("b")], MergeMode.MERGE, ChangeSource.SNAPSHOT)

        assert changes[0].source == ChangeSource.SNAPSHOT
        assert [r.id for r in changes[0].changed] == ["b"]
        assert [r.id for r in changes[0].records] == ["a", "b"]

    def test_replace(self, store: PortfolioStore, record_factory) -> None:
        store.records = [record_factory("a"), record_factory("b")]

        report = store.apply_incoming([record_factory("c")], "replace")

        assert [r.id for r in store.records] == ["c"]
        assert report.deleted == ["a", "b"]


class TestImportPlan:
    """Tests for plan_import."""

    def test_plan_previews_both_modes(self, store: PortfolioStore, record_factory) -> None:
        store.records = [record_factory("a", last_updated=10), record_factory("b")]
        incoming = [record_factory("a", last_updated=50), record_factory("c")]

        plan = plan_import(store, incoming)

        assert plan.incoming_count == 2
        assert plan.merge_preview.counts() == {"added": 1, "updated": 1, "deleted": 0, "kept": 1}
        assert plan.replace_preview.counts()["deleted"] == 1
        assert "2 records received" in plan.describe()

    def test_planning_does_not_modify_store(self, store: PortfolioStore, record_factory) -> None:
        store.records = [record_factory("a")]
        plan_import(store, [record_factory("b")])

        assert [r.id for r in store.records] == ["a"]
        assert store.version == 0

    def test_apply_chosen_mode(self, store: PortfolioStore, record_factory) -> None:
        store.records = [record_factory("a")]
        plan = plan_import(store, [record_factory("b")])

        plan.apply(MergeMode.MERGE)

        assert [r.id for r in store.records] == ["a", "b"]
