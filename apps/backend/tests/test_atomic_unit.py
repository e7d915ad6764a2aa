from __future__ import annotations

import sqlite3
from decimal import Decimal

import pytest
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from moneyapi import errors, models
from moneyapi.core.atomic import AtomicUnit, is_conflict


def test_scope_commits_on_success(session_factory, seeded):
    with AtomicUnit(session_factory).scope() as db:
        db.add(models.Account(user_id=seeded["user_id"], name="Kept"))

    with session_factory.begin() as db:
        assert db.query(models.Account).filter_by(name="Kept").count() == 1


def test_scope_rolls_back_on_ledger_error(session_factory, seeded):
    with pytest.raises(errors.ValidationError):
        with AtomicUnit(session_factory).scope() as db:
            db.add(models.Account(user_id=seeded["user_id"], name="Dropped"))
            db.flush()
            raise errors.ValidationError("nope")

    with session_factory.begin() as db:
        assert db.query(models.Account).filter_by(name="Dropped").count() == 0


def test_scope_maps_database_errors_to_storage_fault(session_factory, seeded, make_account):
    make_account("Twin")
    with pytest.raises(errors.StorageFault):
        with AtomicUnit(session_factory).scope() as db:
            # unique (user_id, name) violation surfaces at flush time
            db.add(models.Account(user_id=seeded["user_id"], name="Twin"))
            db.flush()


def test_run_retries_conflicts_then_succeeds(session_factory):
    calls = []

    def body(db):
        calls.append(1)
        if len(calls) < 3:
            raise errors.ConflictError("lost the race")
        return "done"

    unit = AtomicUnit(session_factory, attempts=5, max_wait=0)
    assert unit.run(body) == "done"
    assert len(calls) == 3


def test_run_gives_up_with_storage_fault(session_factory):
    calls = []

    def body(db):
        calls.append(1)
        raise StaleDataError("row version moved")

    unit = AtomicUnit(session_factory, attempts=3, max_wait=0)
    with pytest.raises(errors.StorageFault) as exc_info:
        unit.run(body)
    assert len(calls) == 3
    assert "3 attempts" in exc_info.value.reason


def test_run_does_not_retry_non_conflicts(session_factory):
    calls = []

    def body(db):
        calls.append(1)
        raise IntegrityError("INSERT ...", {}, Exception("constraint failed"))

    with pytest.raises(errors.StorageFault):
        AtomicUnit(session_factory, attempts=4, max_wait=0).run(body)
    assert len(calls) == 1

    calls.clear()

    def invalid(db):
        calls.append(1)
        raise errors.NotFoundError("account not found")

    with pytest.raises(errors.NotFoundError):
        AtomicUnit(session_factory, attempts=4, max_wait=0).run(invalid)
    assert len(calls) == 1


def test_stale_version_is_retried_against_fresh_state(session_factory, make_account, balance_of):
    account_id = make_account("Contended", "100")
    calls = []

    def body(db):
        calls.append(1)
        account = db.get(models.Account, account_id)
        if len(calls) == 1:
            # another writer bumps the row behind the ORM's back
            db.connection().execute(
                update(models.Account.__table__)
                .where(models.Account.__table__.c.id == account_id)
                .values(balance=Decimal("150"), version_id=models.Account.__table__.c.version_id + 1)
            )
        account.balance = models.to_money(account.balance - 10)
        db.flush()

    AtomicUnit(session_factory, attempts=3, max_wait=0).run(body)
    assert len(calls) == 2
    # the first attempt was rolled back entirely, bump included
    assert balance_of(account_id) == Decimal("90")


def test_is_conflict_recognises_lock_and_serialization_errors():
    locked = OperationalError("UPDATE account", {}, sqlite3.OperationalError("database is locked"))
    assert is_conflict(locked)
    assert is_conflict(StaleDataError("stale"))

    class _PgError(Exception):
        pgcode = "40001"

    assert is_conflict(OperationalError("UPDATE account", {}, _PgError("could not serialize access")))
    assert not is_conflict(IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed")))
