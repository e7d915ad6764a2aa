"""Transaction handlers: decode the request, call the balance service, map errors."""

from __future__ import annotations

from datetime import datetime

from fastapi import Depends, Query
from sqlalchemy.orm import sessionmaker

from moneyapi import errors, models
from moneyapi.api.http_errors import to_http
from moneyapi.core.database import get_session_factory
from moneyapi.core.deps import get_current_user
from moneyapi.schemas import TransactionInput
from moneyapi.services import TransactionBalanceService


def create_transaction(
    payload: TransactionInput,
    session_factory: sessionmaker = Depends(get_session_factory),
    current_user: models.User = Depends(get_current_user),
) -> models.Transaction:
    try:
        intent = payload.to_intent()
        return TransactionBalanceService(session_factory).create(current_user.id, intent)
    except errors.LedgerError as exc:
        raise to_http(exc) from exc


def list_transactions(
    account_id: int | None = Query(None),
    type: models.TxnType | None = Query(None),
    start: datetime | None = Query(None),
    end: datetime | None = Query(None),
    session_factory: sessionmaker = Depends(get_session_factory),
    current_user: models.User = Depends(get_current_user),
) -> list[models.Transaction]:
    try:
        return TransactionBalanceService(session_factory).list(
            current_user.id, account_id=account_id, type=type, start=start, end=end
        )
    except errors.LedgerError as exc:
        raise to_http(exc) from exc


def get_transaction(
    txn_id: int,
    session_factory: sessionmaker = Depends(get_session_factory),
    current_user: models.User = Depends(get_current_user),
) -> models.Transaction:
    try:
        return TransactionBalanceService(session_factory).get(current_user.id, txn_id)
    except errors.LedgerError as exc:
        raise to_http(exc) from exc


def update_transaction(
    txn_id: int,
    payload: TransactionInput,
    session_factory: sessionmaker = Depends(get_session_factory),
    current_user: models.User = Depends(get_current_user),
) -> models.Transaction:
    # full replacement: every field of the stored transaction comes from the payload
    try:
        intent = payload.to_intent()
        return TransactionBalanceService(session_factory).update(current_user.id, txn_id, intent)
    except errors.LedgerError as exc:
        raise to_http(exc) from exc


def delete_transaction(
    txn_id: int,
    session_factory: sessionmaker = Depends(get_session_factory),
    current_user: models.User = Depends(get_current_user),
) -> None:
    try:
        TransactionBalanceService(session_factory).delete(current_user.id, txn_id)
    except errors.LedgerError as exc:
        raise to_http(exc) from exc
    return None
