"""Account handlers; balances are read-only here and change only through transactions."""

from __future__ import annotations

from fastapi import Depends, Query
from sqlalchemy.orm import sessionmaker

from moneyapi import errors, models
from moneyapi.api.http_errors import to_http
from moneyapi.core.config import AccountDeletePolicy
from moneyapi.core.database import get_session_factory
from moneyapi.core.deps import get_current_user
from moneyapi.schemas import AccountCreate, AccountUpdate
from moneyapi.services import AccountService


def create_account(
    payload: AccountCreate,
    session_factory: sessionmaker = Depends(get_session_factory),
    current_user: models.User = Depends(get_current_user),
) -> models.Account:
    try:
        return AccountService(session_factory).create(
            user_id=current_user.id, name=payload.name, balance=payload.balance
        )
    except errors.LedgerError as exc:
        raise to_http(exc) from exc


def list_accounts(
    session_factory: sessionmaker = Depends(get_session_factory),
    current_user: models.User = Depends(get_current_user),
) -> list[models.Account]:
    return AccountService(session_factory).get_all(user_id=current_user.id)


def get_account(
    account_id: int,
    session_factory: sessionmaker = Depends(get_session_factory),
    current_user: models.User = Depends(get_current_user),
) -> models.Account:
    try:
        return AccountService(session_factory).get_by_id(current_user.id, account_id)
    except errors.LedgerError as exc:
        raise to_http(exc) from exc


def update_account(
    account_id: int,
    payload: AccountUpdate,
    session_factory: sessionmaker = Depends(get_session_factory),
    current_user: models.User = Depends(get_current_user),
) -> models.Account:
    try:
        return AccountService(session_factory).update(
            user_id=current_user.id, account_id=account_id, name=payload.name
        )
    except errors.LedgerError as exc:
        raise to_http(exc) from exc


def delete_account(
    account_id: int,
    policy: AccountDeletePolicy | None = Query(None, description="Defaults to the configured policy"),
    session_factory: sessionmaker = Depends(get_session_factory),
    current_user: models.User = Depends(get_current_user),
) -> None:
    try:
        AccountService(session_factory).delete(user_id=current_user.id, account_id=account_id, policy=policy)
    except errors.LedgerError as exc:
        raise to_http(exc) from exc
    return None
