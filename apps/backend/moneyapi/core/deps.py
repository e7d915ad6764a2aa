from __future__ import annotations

from fastapi import Depends
from sqlalchemy.orm import sessionmaker

from moneyapi.core.atomic import AtomicUnit
from moneyapi.core.database import get_session_factory
from moneyapi import models


def get_current_user(session_factory: sessionmaker = Depends(get_session_factory)) -> models.User:
    """Very lightweight current user resolver.

    For now, returns the first user (creates a demo if none). Tests may override
    this dependency to simulate different users. Its id is the owner key for
    every ledger call; owner fields in request bodies are never used.
    """
    with AtomicUnit(session_factory).scope() as db:
        user = db.query(models.User).order_by(models.User.id).first()
        if not user:
            user = models.User(email="demo@example.com", name="Demo", is_active=True)
            db.add(user)
            db.flush()
    return user
