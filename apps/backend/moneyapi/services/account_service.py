from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session, sessionmaker

from moneyapi import errors, models
from moneyapi.core.atomic import AtomicUnit
from moneyapi.core.config import AccountDeletePolicy, settings
from moneyapi.services.intents import check_money, coerce_money
from moneyapi.services.stores import AccountStore, TransactionStore
from moneyapi.services.transaction_service import TransactionBalanceService

logger = logging.getLogger(__name__)


class AccountService:
    def __init__(self, session_factory: sessionmaker, *, unit: AtomicUnit | None = None) -> None:
        self.unit = unit or AtomicUnit(session_factory)
        self.balances = TransactionBalanceService(session_factory, unit=self.unit)

    def get_all(self, *, user_id: int) -> list[models.Account]:
        with self.unit.scope() as db:
            return AccountStore(db).list_by_owner(user_id)

    def get_by_id(self, user_id: int, account_id: int) -> models.Account:
        with self.unit.scope() as db:
            return AccountStore(db).find_owned(account_id, user_id)

    def create(self, *, user_id: int, name: str, balance: Decimal | int | str = 0) -> models.Account:
        """Open an account; ``balance`` is the opening balance, not a transaction."""
        name = self._clean_name(name)
        opening = models.to_money(check_money(coerce_money(balance, "balance"), "balance"))

        def _create(db: Session) -> models.Account:
            store = AccountStore(db)
            if store.name_taken(user_id, name):
                raise errors.DuplicateAccountError("account with same name already exists for user")
            return store.insert(models.Account(user_id=user_id, name=name, balance=opening))

        account = self.unit.run(_create)
        logger.info("account %s opened: user=%s balance=%s", account.id, user_id, account.balance)
        return account

    def update(self, *, user_id: int, account_id: int, name: str) -> models.Account:
        """Rename an owned account. The balance is never writable here."""
        name = self._clean_name(name)

        def _update(db: Session) -> models.Account:
            store = AccountStore(db)
            account = store.find_owned(account_id, user_id, lock=True)
            if store.name_taken(user_id, name, exclude_id=account.id):
                raise errors.DuplicateAccountError("account with same name already exists for user")
            account.name = name
            store.save(account)
            return account

        account = self.unit.run(_update)
        logger.info("account %s renamed: user=%s", account.id, user_id)
        return account

    def delete(
        self,
        *,
        user_id: int,
        account_id: int,
        policy: Optional[AccountDeletePolicy] = None,
    ) -> int:
        """Delete an owned account; returns how many transactions were removed with it.

        ``BLOCK`` refuses while any transaction references the account.
        ``CASCADE`` reverts and deletes those transactions first, which also
        restores the counterpart balance of any transfer.
        """
        policy = AccountDeletePolicy(policy or settings.ACCOUNT_DELETE_POLICY)

        def _delete(db: Session) -> int:
            accounts = AccountStore(db)
            account = accounts.find_owned(account_id, user_id)
            transactions = TransactionStore(db)
            referencing = transactions.list_referencing(account.id, lock=True)
            if referencing and policy is AccountDeletePolicy.BLOCK:
                raise errors.AccountInUseError(
                    f"account is referenced by {len(referencing)} transaction(s)"
                )
            # transaction rows first, then every touched account in one ascending-id pass
            touched = [account.id, *(i for txn in referencing for i in txn.account_ids)]
            locked = accounts.lock(user_id, touched)
            if account.id not in locked:
                raise errors.NotFoundError("account not found")
            for txn in referencing:
                self.balances.revert(db, txn, locked)
                transactions.delete(txn)
            accounts.delete(locked[account.id])
            return len(referencing)

        removed = self.unit.run(_delete)
        logger.info(
            "account %s deleted: user=%s policy=%s cascaded_transactions=%d",
            account_id, user_id, policy.value, removed,
        )
        return removed

    @staticmethod
    def _clean_name(name: str | None) -> str:
        name = (name or "").strip()
        if not name:
            raise errors.ValidationError("account name is required")
        return name
