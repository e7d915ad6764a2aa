"""Domain errors raised by the ledger services.

Every failure a caller can observe is one of ``ValidationError``,
``NotFoundError``, ``IntegrityFault`` or ``StorageFault``. ``ConflictError`` is
internal to the atomic unit's retry loop and never escapes it.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class; ``reason`` is the human readable message."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ValidationError(LedgerError):
    """Malformed intent, detected before any store mutation."""


class DuplicateAccountError(ValidationError):
    pass


class NotFoundError(LedgerError):
    """Referenced account, sub-category or transaction is absent or not owned by the caller."""


class IntegrityFault(LedgerError):
    """Stored data no longer satisfies a referential assumption."""


class AccountInUseError(IntegrityFault):
    pass


class StorageFault(LedgerError):
    """The store could not complete the unit (including exhausted conflict retries)."""


class ConflictError(LedgerError):
    """A concurrent writer won the race for an account row; the unit may be retried."""
