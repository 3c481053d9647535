"""Exception hierarchy for the car ledger.

Every failure a transaction can report carries a stable ``code`` so the
gateway (or any other caller) can classify it without parsing messages.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base exception for all ledger errors."""

    code = "ledger_error"

    def __init__(self, message: str, *, key: str | None = None) -> None:
        self.key = key
        super().__init__(message)

    def to_dict(self) -> dict[str, str]:
        return {"error": self.code, "detail": str(self)}


class NotFoundError(LedgerError):
    """Referenced car or person is absent from the ledger."""

    code = "not_found"


class InvalidOperationError(LedgerError):
    """Request violates a business rule (self-transfer, unaccepted
    malfunctions, unaffordable purchase) or is malformed."""

    code = "invalid_operation"


class UnknownTransactionError(InvalidOperationError):
    """No transaction handler is registered under the requested name."""

    code = "unknown_transaction"


class InsufficientFundsError(LedgerError):
    """Owner cannot pay for the repair of their car."""

    code = "insufficient_funds"


class SerializationError(LedgerError):
    """A stored record could not be decoded."""

    code = "serialization_error"


class StorageError(LedgerError):
    """The underlying store failed to complete an operation."""

    code = "storage_error"


__all__ = [
    "LedgerError",
    "NotFoundError",
    "InvalidOperationError",
    "UnknownTransactionError",
    "InsufficientFundsError",
    "SerializationError",
    "StorageError",
]
