"""Tests for custom exception hierarchy."""

from loan_sync.exceptions import (
    ConfigurationError,
    DecodeError,
    InvalidRecordError,
    LoanSyncError,
    ParseError,
    PayloadTooLargeError,
    PushError,
    QuotaError,
    RecordNotFoundError,
    StorageError,
    SyncConnectError,
    SyncError,
)


class TestExceptionHierarchy:
    """Test exception inheritance chain."""

    def test_loan_sync_error_is_exception(self) -> None:
        assert isinstance(LoanSyncError("test"), Exception)

    def test_decode_error_is_parse_error(self) -> None:
        err = DecodeError("test")
        assert isinstance(err, ParseError)
        assert isinstance(err, LoanSyncError)

    def test_payload_too_large_is_decode_error(self) -> None:
        assert isinstance(PayloadTooLargeError("test"), DecodeError)

    def test_record_errors_are_loan_sync_errors(self) -> None:
        assert isinstance(InvalidRecordError("test"), LoanSyncError)
        assert isinstance(RecordNotFoundError("test"), LoanSyncError)

    def test_configuration_error_is_loan_sync_error(self) -> None:
        assert isinstance(ConfigurationError("test"), LoanSyncError)

    def test_sync_errors(self) -> None:
        assert isinstance(SyncConnectError("test"), SyncError)
        assert isinstance(PushError("test"), SyncError)
        assert isinstance(SyncError("test"), LoanSyncError)

    def test_quota_error_is_storage_error(self) -> None:
        err = QuotaError("test")
        assert isinstance(err, StorageError)
        assert isinstance(err, LoanSyncError)

    def test_exception_message(self) -> None:
        err = RecordNotFoundError("Record loan-001 not found")
        assert str(err) == "Record loan-001 not found"
