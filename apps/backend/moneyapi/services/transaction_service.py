from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, sessionmaker

from moneyapi import errors, models
from moneyapi.core.atomic import AtomicUnit
from moneyapi.services.intents import BalanceEffect, Phase, TransactionIntent
from moneyapi.services.stores import AccountStore, SubCategoryStore, TransactionStore

logger = logging.getLogger(__name__)


class TransactionBalanceService:
    """Keep account balances consistent with the recorded transactions.

    Create, update and delete each run as one atomic unit: the stored
    transaction (if any) and then the affected accounts are re-read under
    lock, the signed deltas are applied and the transaction row is written,
    or nothing is. Update is revert-then-apply inside the same unit, so
    balances never show the reverted-only state.
    """

    def __init__(self, session_factory: sessionmaker, *, unit: AtomicUnit | None = None) -> None:
        self.unit = unit or AtomicUnit(session_factory)

    # ---- Commands --------------------------------------------------------
    def create(self, user_id: int, intent: TransactionIntent) -> models.Transaction:
        txn = self.unit.run(lambda db: self._create(db, user_id, intent))
        logger.info(
            "transaction %s created: user=%s type=%s amount=%s",
            txn.id, user_id, txn.type.value, txn.amount,
        )
        return txn

    def update(self, user_id: int, transaction_id: int, intent: TransactionIntent) -> models.Transaction:
        txn = self.unit.run(lambda db: self._update(db, user_id, transaction_id, intent))
        logger.info(
            "transaction %s replaced: user=%s type=%s amount=%s",
            txn.id, user_id, txn.type.value, txn.amount,
        )
        return txn

    def delete(self, user_id: int, transaction_id: int) -> None:
        self.unit.run(lambda db: self._delete(db, user_id, transaction_id))
        logger.info("transaction %s deleted: user=%s", transaction_id, user_id)

    # ---- Queries ---------------------------------------------------------
    def get(self, user_id: int, transaction_id: int) -> models.Transaction:
        with self.unit.scope() as db:
            return TransactionStore(db).find_owned(transaction_id, user_id)

    def list(
        self,
        user_id: int,
        *,
        account_id: Optional[int] = None,
        type: Optional[models.TxnType] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[models.Transaction]:
        with self.unit.scope() as db:
            return TransactionStore(db).list_by_owner(
                user_id, account_id=account_id, type=type, start=start, end=end
            )

    # ==================== Unit bodies ====================

    def _create(self, db: Session, user_id: int, intent: TransactionIntent) -> models.Transaction:
        self._check_sub_category(db, user_id, intent)
        accounts = AccountStore(db).lock(user_id, intent.account_ids)
        self._post(db, accounts, intent.effect, Phase.APPLY)
        txn = models.Transaction(user_id=user_id, **intent.record_fields())
        return TransactionStore(db).insert(txn)

    def _update(
        self, db: Session, user_id: int, transaction_id: int, intent: TransactionIntent
    ) -> models.Transaction:
        store = TransactionStore(db)
        txn = store.find_owned(transaction_id, user_id, lock=True)
        self._check_sub_category(db, user_id, intent)

        old_effect = BalanceEffect.of(txn)
        # one lock round-trip, ascending ids, covering both the old and new accounts
        accounts = AccountStore(db).lock(user_id, [*txn.account_ids, *intent.account_ids])

        self._post(db, accounts, old_effect, Phase.REVERT, transaction_id=txn.id)
        self._post(db, accounts, intent.effect, Phase.APPLY)

        for key, value in intent.record_fields().items():
            setattr(txn, key, value)
        store.save(txn)
        return txn

    def _delete(self, db: Session, user_id: int, transaction_id: int) -> None:
        store = TransactionStore(db)
        txn = store.find_owned(transaction_id, user_id, lock=True)
        accounts = AccountStore(db).lock(user_id, txn.account_ids)
        self._post(db, accounts, BalanceEffect.of(txn), Phase.REVERT, transaction_id=txn.id)
        store.delete(txn)

    # ==================== Helpers ====================

    def revert(
        self,
        db: Session,
        txn: models.Transaction,
        accounts: dict[int, models.Account] | None = None,
    ) -> None:
        """Undo ``txn``'s balance effect inside the caller's unit (the row is left in place).

        Callers that already hold the account locks pass them in as ``accounts``.
        """
        if accounts is None:
            accounts = AccountStore(db).lock(txn.user_id, txn.account_ids)
        self._post(db, accounts, BalanceEffect.of(txn), Phase.REVERT, transaction_id=txn.id)

    def _post(
        self,
        db: Session,
        accounts: dict[int, models.Account],
        effect: BalanceEffect,
        phase: Phase,
        *,
        transaction_id: int | None = None,
    ) -> None:
        """Apply ``effect`` (or its inverse) to already locked account rows.

        A missing account while applying means the caller referenced an
        account it does not own; while reverting it means stored data lost an
        account it depends on.
        """
        store = AccountStore(db)
        for role, (account_id, delta) in zip(("source", "destination"), effect.deltas(phase)):
            account = accounts.get(account_id)
            if account is None:
                if phase is Phase.REVERT:
                    raise errors.IntegrityFault(
                        f"{role} account {account_id} referenced by transaction "
                        f"{transaction_id} no longer exists"
                    )
                raise errors.NotFoundError(f"{role} account not found")
            balance = models.to_money(account.balance + delta)
            if abs(balance) > models.MAX_MONEY:
                raise errors.ValidationError(f"{role} account balance would exceed {models.MAX_MONEY}")
            account.balance = balance
            store.save(account)

    def _check_sub_category(self, db: Session, user_id: int, intent: TransactionIntent) -> None:
        if intent.sub_category_id is not None:
            SubCategoryStore(db).find_owned(intent.sub_category_id, user_id)
