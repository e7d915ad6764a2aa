from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from moneyapi import errors, models


class AccountStore:
    """Field persistence for accounts; no balance arithmetic lives here."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def find_owned(self, account_id: int, user_id: int, *, lock: bool = False) -> models.Account:
        q = self.db.query(models.Account).filter(
            models.Account.id == account_id,
            models.Account.user_id == user_id,
        )
        if lock:
            q = q.with_for_update()
        account = q.first()
        if not account:
            raise errors.NotFoundError("account not found")
        return account

    def lock(self, user_id: int, account_ids: Iterable[int]) -> dict[int, models.Account]:
        """SELECT ... FOR UPDATE the owned rows among ``account_ids``.

        Rows are locked in ascending id order so two units never wait on each
        other in opposite orders. Missing ids are simply absent from the result.
        Rows already in the session are refreshed, so balances are the ones
        read under the lock.
        """
        ids = sorted({account_id for account_id in account_ids if account_id is not None})
        if not ids:
            return {}
        rows = (
            self.db.query(models.Account)
            .filter(models.Account.id.in_(ids), models.Account.user_id == user_id)
            .order_by(models.Account.id)
            .with_for_update()
            .populate_existing()
            .all()
        )
        return {row.id: row for row in rows}

    def list_by_owner(self, user_id: int) -> list[models.Account]:
        return (
            self.db.query(models.Account)
            .filter(models.Account.user_id == user_id)
            .order_by(models.Account.id)
            .all()
        )

    def name_taken(self, user_id: int, name: str, *, exclude_id: int | None = None) -> bool:
        q = self.db.query(models.Account.id).filter(
            models.Account.user_id == user_id,
            models.Account.name == name,
        )
        if exclude_id is not None:
            q = q.filter(models.Account.id != exclude_id)
        return q.first() is not None

    def insert(self, account: models.Account) -> models.Account:
        self.db.add(account)
        self.db.flush()
        return account

    def save(self, account: models.Account) -> None:
        self.db.add(account)

    def delete(self, account: models.Account) -> None:
        self.db.delete(account)
        self.db.flush()


class TransactionStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def find_owned(self, transaction_id: int, user_id: int, *, lock: bool = False) -> models.Transaction:
        q = self.db.query(models.Transaction).filter(
            models.Transaction.id == transaction_id,
            models.Transaction.user_id == user_id,
        )
        if lock:
            # a concurrent update/delete of the same row waits here, then sees its result
            q = q.with_for_update().populate_existing()
        txn = q.first()
        if not txn:
            raise errors.NotFoundError("transaction not found")
        return txn

    def list_by_owner(
        self,
        user_id: int,
        *,
        account_id: Optional[int] = None,
        type: Optional[models.TxnType] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[models.Transaction]:
        q = self.db.query(models.Transaction).filter(models.Transaction.user_id == user_id)
        if account_id is not None:
            q = q.filter(
                or_(
                    models.Transaction.account_id == account_id,
                    models.Transaction.destination_account_id == account_id,
                )
            )
        if type is not None:
            q = q.filter(models.Transaction.type == type)
        if start is not None:
            q = q.filter(models.Transaction.transaction_date >= start)
        if end is not None:
            q = q.filter(models.Transaction.transaction_date <= end)
        return q.order_by(models.Transaction.transaction_date.desc(), models.Transaction.id.desc()).all()

    def list_referencing(self, account_id: int, *, lock: bool = False) -> list[models.Transaction]:
        """Every transaction touching ``account_id`` on either side, oldest first."""
        q = (
            self.db.query(models.Transaction)
            .filter(
                or_(
                    models.Transaction.account_id == account_id,
                    models.Transaction.destination_account_id == account_id,
                )
            )
            .order_by(models.Transaction.id)
        )
        if lock:
            q = q.with_for_update().populate_existing()
        return q.all()

    def insert(self, txn: models.Transaction) -> models.Transaction:
        self.db.add(txn)
        self.db.flush()
        return txn

    def save(self, txn: models.Transaction) -> None:
        self.db.add(txn)
        self.db.flush()

    def delete(self, txn: models.Transaction) -> None:
        self.db.delete(txn)
        self.db.flush()


class SubCategoryStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def find_owned(self, sub_category_id: int, user_id: int) -> models.SubCategory:
        row = (
            self.db.query(models.SubCategory)
            .filter(models.SubCategory.id == sub_category_id, models.SubCategory.user_id == user_id)
            .first()
        )
        if not row:
            raise errors.NotFoundError("sub-category not found")
        return row
