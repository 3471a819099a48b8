# src/com/lingenhag/lockstats/domain/errors.py
from __future__ import annotations


class LedgerError(ValueError):
    """Base class for events the ledger refuses to apply."""


class OutOfOrderEventError(LedgerError):
    """Raised when an event falls on a day older than the newest day slot."""


class GenesisMismatchError(LedgerError):
    """Raised when the first event of an empty ledger is not on the genesis day."""


class InvalidEventError(LedgerError):
    """Raised when a feed record cannot be turned into a LockEvent."""
