from __future__ import annotations

import logging

from sqlalchemy.orm import sessionmaker

from .core.atomic import AtomicUnit
from .core.database import SessionLocal
from .core.logging import setup_logging
from .models import Account, Category, SubCategory, TxnType, User

logger = logging.getLogger(__name__)

DEMO_EMAIL = "demo@example.com"

DEFAULT_CATEGORIES: dict[TxnType, dict[str, tuple[str, ...]]] = {
    TxnType.EXPENSE: {
        "Food": ("Groceries", "Dining out"),
        "Transport": ("Fuel", "Public transport"),
        "Housing": ("Rent", "Utilities"),
    },
    TxnType.INCOME: {
        "Salary": ("Monthly salary", "Bonus"),
        "Other income": ("Gifts",),
    },
    TxnType.TRANSFER: {
        "Transfers": ("Between own accounts",),
    },
}

DEFAULT_ACCOUNTS = ("Cash", "Bank")


def seed(session_factory: sessionmaker = SessionLocal) -> int:
    """Create the demo user with default categories and empty accounts.

    Safe to run repeatedly; rows that already exist are left untouched.
    Returns the demo user's id.
    """
    with AtomicUnit(session_factory).scope() as db:
        user = db.query(User).filter_by(email=DEMO_EMAIL).first()
        if not user:
            user = User(email=DEMO_EMAIL, name="Demo", is_active=True)
            db.add(user)
            db.flush()
            logger.info("Created demo user id=%s", user.id)

        for txn_type, groups in DEFAULT_CATEGORIES.items():
            for cat_name, sub_names in groups.items():
                cat = db.query(Category).filter_by(user_id=user.id, name=cat_name, type=txn_type).first()
                if not cat:
                    cat = Category(user_id=user.id, name=cat_name, type=txn_type)
                    db.add(cat)
                    db.flush()
                existing = {s.name for s in cat.subcategories}
                for sub_name in sub_names:
                    if sub_name not in existing:
                        db.add(SubCategory(user_id=user.id, category_id=cat.id, name=sub_name))

        for name in DEFAULT_ACCOUNTS:
            if not db.query(Account).filter_by(user_id=user.id, name=name).first():
                db.add(Account(user_id=user.id, name=name))

        return user.id


if __name__ == "__main__":
    setup_logging()
    seed()
