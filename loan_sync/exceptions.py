"""Custom exception hierarchy for loan-sync."""


class LoanSyncError(Exception):
    """Base exception for all loan-sync errors."""


class ParseError(LoanSyncError):
    """Raised when stored or imported content is not a valid record array."""


class DecodeError(ParseError):
    """Raised when a share-link payload cannot be decoded."""


class PayloadTooLargeError(DecodeError):
    """Raised when a record set does not fit in a share-link payload."""


class InvalidRecordError(LoanSyncError):
    """Raised when a loan record violates its structural invariants."""


class RecordNotFoundError(LoanSyncError):
    """Raised when a referenced loan record does not exist."""


class ConfigurationError(LoanSyncError):
    """Raised when configuration is invalid or missing."""


class SyncError(LoanSyncError):
    """Base exception for realtime sync failures."""


class SyncConnectError(SyncError):
    """Raised when the realtime store cannot be reached or configured."""


class PushError(SyncError):
    """Raised when an outbound write to the realtime store fails."""


class StorageError(LoanSyncError):
    """Base exception for local storage failures."""


class QuotaError(StorageError):
    """Raised when the local state cannot be written."""
