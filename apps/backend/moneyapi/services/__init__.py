"""
Services package

Ledger business logic: the transaction balance service (create / update /
delete with consistent balances), account lifecycle and the thin stores they
persist through.
"""

from .account_service import AccountService
from .transaction_service import TransactionBalanceService

__all__ = [
    "AccountService",
    "TransactionBalanceService",
]
