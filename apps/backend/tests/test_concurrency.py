from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from decimal import Decimal

from moneyapi import errors, models
from moneyapi.core.atomic import AtomicUnit
from moneyapi.services import TransactionBalanceService
from moneyapi.services.intents import ExpenseIntent, IncomeIntent, TransferIntent

WHEN = datetime(2024, 6, 1, 8, 0)


def _ledger_balance(session_factory, account_id: int, opening: Decimal) -> Decimal:
    """Opening balance plus the signed sum of every stored transaction touching the account."""
    with session_factory.begin() as db:
        total = opening
        for txn in db.query(models.Transaction).all():
            if txn.type is models.TxnType.EXPENSE and txn.account_id == account_id:
                total -= txn.amount
            elif txn.type is models.TxnType.INCOME and txn.account_id == account_id:
                total += txn.amount
            elif txn.type is models.TxnType.TRANSFER:
                if txn.account_id == account_id:
                    total -= txn.amount
                if txn.destination_account_id == account_id:
                    total += txn.amount
        return total


def test_parallel_writes_to_one_account_lose_nothing(session_factory, seeded, make_account, balance_of):
    user_id = seeded["user_id"]
    hot = make_account("Hot", "1000")
    side = make_account("Side", "0")
    service = TransactionBalanceService(session_factory, unit=AtomicUnit(session_factory, attempts=10))

    def op(i: int) -> None:
        if i % 3 == 0:
            service.create(
                user_id,
                ExpenseIntent(account_id=hot, amount=Decimal("1.50"), transaction_date=WHEN, sub_category_id=seeded["expense_sub"]),
            )
        elif i % 3 == 1:
            service.create(
                user_id,
                IncomeIntent(account_id=hot, amount=Decimal("2.25"), transaction_date=WHEN, sub_category_id=seeded["income_sub"]),
            )
        else:
            service.create(
                user_id,
                TransferIntent(account_id=hot, destination_account_id=side, amount=Decimal("0.75"), transaction_date=WHEN),
            )

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(op, range(60)))

    # 20 of each kind
    assert balance_of(hot) == Decimal("1000") - 20 * Decimal("1.50") + 20 * Decimal("2.25") - 20 * Decimal("0.75")
    assert balance_of(side) == 20 * Decimal("0.75")
    assert balance_of(hot) == _ledger_balance(session_factory, hot, Decimal("1000"))


def test_parallel_updates_and_deletes_keep_balances_consistent(session_factory, seeded, make_account, balance_of):
    user_id = seeded["user_id"]
    a = make_account("A", "500")
    b = make_account("B", "500")
    service = TransactionBalanceService(session_factory, unit=AtomicUnit(session_factory, attempts=10))

    created = [
        service.create(
            user_id,
            TransferIntent(account_id=a, destination_account_id=b, amount=Decimal("5"), transaction_date=WHEN),
        ).id
        for _ in range(50)
    ]

    def op(pair: tuple[int, int]) -> None:
        i, txn_id = pair
        if i % 2 == 0:
            service.delete(user_id, txn_id)
        else:
            # flip direction and change amount
            service.update(
                user_id,
                txn_id,
                TransferIntent(account_id=b, destination_account_id=a, amount=Decimal("3"), transaction_date=WHEN),
            )

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(op, enumerate(created)))

    # 25 deleted, 25 now move 3 from B to A
    assert balance_of(a) == Decimal("575")
    assert balance_of(b) == Decimal("425")
    assert balance_of(a) + balance_of(b) == Decimal("1000")
    assert balance_of(a) == _ledger_balance(session_factory, a, Decimal("500"))


def _run_together(*calls):
    """Start every call at once; return the exception each raised (or None)."""
    barrier = threading.Barrier(len(calls))

    def _go(fn):
        barrier.wait()
        try:
            fn()
        except errors.LedgerError as exc:
            return exc
        return None

    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        return list(pool.map(_go, calls))


def test_racing_deletes_of_one_transaction_revert_it_once(session_factory, seeded, make_account, balance_of):
    user_id = seeded["user_id"]
    a = make_account("A", "100")
    b = make_account("B", "0")
    service = TransactionBalanceService(session_factory, unit=AtomicUnit(session_factory, attempts=10))

    for _ in range(10):
        txn = service.create(
            user_id, TransferIntent(account_id=a, destination_account_id=b, amount=Decimal("50"), transaction_date=WHEN)
        )
        outcomes = _run_together(lambda: service.delete(user_id, txn.id), lambda: service.delete(user_id, txn.id))

        assert sorted(type(o).__name__ for o in outcomes) == ["NoneType", "NotFoundError"]
        assert (balance_of(a), balance_of(b)) == (Decimal("100"), Decimal("0"))


def test_racing_update_and_delete_of_one_transaction(session_factory, seeded, make_account, balance_of):
    user_id = seeded["user_id"]
    a = make_account("A", "100")
    b = make_account("B", "0")
    service = TransactionBalanceService(session_factory, unit=AtomicUnit(session_factory, attempts=10))
    replacement = TransferIntent(account_id=b, destination_account_id=a, amount=Decimal("7"), transaction_date=WHEN)

    for _ in range(10):
        txn = service.create(
            user_id, TransferIntent(account_id=a, destination_account_id=b, amount=Decimal("50"), transaction_date=WHEN)
        )
        update_error, delete_error = _run_together(
            lambda: service.update(user_id, txn.id, replacement),
            lambda: service.delete(user_id, txn.id),
        )

        # either order ends with the row gone and both balances back where they started
        assert delete_error is None
        assert update_error is None or isinstance(update_error, errors.NotFoundError)
        assert (balance_of(a), balance_of(b)) == (Decimal("100"), Decimal("0"))
        assert service.list(user_id) == []
