from __future__ import annotations

import os
import tempfile
from decimal import Decimal
from typing import Any, Callable, Generator

import pytest
from sqlalchemy.orm import sessionmaker

from moneyapi.core.database import Base, create_db_engine, get_session_factory
from moneyapi.main import app
from moneyapi import models


@pytest.fixture(scope="session")
def test_db_url() -> Generator[str, Any, Any]:
    # temp-file SQLite so the developer's db.sqlite3 is never touched
    fd, path = tempfile.mkstemp(prefix="moneyapi_test_", suffix=".sqlite3")
    os.close(fd)
    url = f"sqlite:///{path}"
    yield url
    for suffix in ("", "-wal", "-shm"):
        try:
            os.remove(path + suffix)
        except OSError:
            pass


@pytest.fixture(scope="session")
def engine(test_db_url: str):
    eng = create_db_engine(test_db_url, busy_timeout=30)
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture(scope="function")
def session_factory(engine) -> Generator[sessionmaker, Any, Any]:
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    try:
        yield factory
    finally:
        # wipe rows child-first so FK enforcement stays on
        with engine.begin() as conn:
            for tbl in reversed(Base.metadata.sorted_tables):
                conn.execute(tbl.delete())


@pytest.fixture()
def seeded(session_factory) -> dict[str, int]:
    """Two users, each with one sub-category per transaction type.

    The demo user is created first, so it is the one ``get_current_user``
    resolves to in API tests.
    """
    ids: dict[str, int] = {}
    with session_factory.begin() as db:
        for key, email in (("user_id", "demo@example.com"), ("other_user_id", "other@example.com")):
            user = models.User(email=email, name=email.split("@")[0], is_active=True)
            db.add(user)
            db.flush()
            ids[key] = user.id
            prefix = "" if key == "user_id" else "other_"
            for txn_type, cat_name, sub_name in (
                (models.TxnType.EXPENSE, "Food", "Groceries"),
                (models.TxnType.INCOME, "Salary", "Monthly"),
                (models.TxnType.TRANSFER, "Transfers", "Own accounts"),
            ):
                cat = models.Category(user_id=user.id, name=cat_name, type=txn_type)
                db.add(cat)
                db.flush()
                sub = models.SubCategory(user_id=user.id, category_id=cat.id, name=sub_name)
                db.add(sub)
                db.flush()
                ids[f"{prefix}{txn_type.value}_sub"] = sub.id
    return ids


@pytest.fixture()
def make_account(session_factory, seeded) -> Callable[..., int]:
    def _make(name: str, balance: str | int = "0", *, user_id: int | None = None) -> int:
        with session_factory.begin() as db:
            account = models.Account(
                user_id=user_id or seeded["user_id"],
                name=name,
                balance=Decimal(str(balance)),
            )
            db.add(account)
            db.flush()
            return account.id

    return _make


@pytest.fixture()
def balance_of(session_factory) -> Callable[[int], Decimal]:
    """Read an account balance through a short-lived session of its own."""

    def _balance(account_id: int) -> Decimal:
        with session_factory.begin() as db:
            return db.get(models.Account, account_id).balance

    return _balance


@pytest.fixture(autouse=True)
def override_dependency(session_factory):
    # FastAPI DI override
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    yield
    app.dependency_overrides.clear()


@pytest.fixture()
def client(seeded):
    from fastapi.testclient import TestClient
    with TestClient(app) as c:
        yield c
