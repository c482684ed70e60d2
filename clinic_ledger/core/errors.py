"""Error types raised by the ledger core."""


class LedgerError(Exception):
    """Base exception for ledger errors."""

    pass


class PreconditionError(LedgerError):
    """Request rejected before any storage access."""

    pass


class StorageError(LedgerError):
    """A storage step failed and the transaction was rolled back."""

    pass


class StoreBusyError(StorageError):
    """Timed out waiting for the database connection."""

    pass


class NotFoundError(StorageError):
    """A referenced patient or session does not exist."""

    pass
