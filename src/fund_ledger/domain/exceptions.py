class LedgerError(Exception):
    """Base exception for fund ledger failures."""


class ValidationError(LedgerError):
    """Raised when a transaction candidate or patch is malformed."""


class NotFoundError(LedgerError):
    """Raised when a transaction id does not exist in the store."""


class StorageError(LedgerError):
    """Raised when the backing store fails to read or write."""


class AccessDeniedError(LedgerError):
    """Raised when a user reaches for another department's ledger."""
