"""Ledger engine package."""

from thara.ledger.engine import OBLIGATION_PAYMENT_NOTE, BalanceLedger
from thara.ledger.errors import EntityNotFoundError, LedgerError, NotAuthenticatedError
from thara.ledger.session import LedgerSession

__all__ = [
    "OBLIGATION_PAYMENT_NOTE",
    "BalanceLedger",
    "EntityNotFoundError",
    "LedgerError",
    "LedgerSession",
    "NotAuthenticatedError",
]
