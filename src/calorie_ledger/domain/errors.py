"""Domain errors raised by ledger and profile services."""


class LedgerError(Exception):
    """Base class for expected application errors."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class InvalidInputError(LedgerError):
    """Raised when a request fails validation."""


class NotFoundError(LedgerError):
    """Raised when a day, meal entry or profile cannot be resolved."""


class ConflictError(LedgerError):
    """Raised when a concurrent update keeps invalidating an edit."""


class StorageError(LedgerError):
    """Raised when the document store fails."""


class IdentityUnavailableError(LedgerError):
    """Raised when the identity provider cannot be reached."""
