from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from zoneinfo import ZoneInfo

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .core.config import settings
from .core.database import Base


try:
    LOCAL_ZONE = ZoneInfo(getattr(settings, "TIMEZONE", "Asia/Jakarta"))
except Exception:
    LOCAL_ZONE = ZoneInfo("UTC")

CENT = Decimal("0.01")
# largest magnitude a Numeric(15, 2) column holds exactly
MAX_MONEY = Decimal("9999999999999.99")


def now_local_naive() -> datetime:
    """Return naive datetime normalized to configured local timezone."""
    return datetime.now(LOCAL_ZONE).replace(tzinfo=None)


def to_money(value: Decimal | int | str | float) -> Decimal:
    """Fixed-point with two fractional digits; floats go through ``str`` to avoid binary noise."""
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_local_naive, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=now_local_naive, onupdate=now_local_naive, nullable=False)


class TxnType(str, Enum):
    EXPENSE = "expense"
    INCOME = "income"
    TRANSFER = "transfer"


def _txn_type_enum() -> SAEnum:
    # persist the lower-case values ("expense"), not the member names
    return SAEnum(TxnType, name="txn_type", values_callable=lambda e: [m.value for m in e])


class User(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String(255))
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)

    accounts: Mapped[list["Account"]] = relationship(back_populates="user")


class Account(Base, TimestampMixin):
    """A source or destination of money owned by exactly one user.

    ``balance`` is only ever changed by the transaction balance service (and
    set once as the opening balance). ``version_id`` is bumped on every
    UPDATE; a write based on a stale read fails with ``StaleDataError``.
    """

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    balance: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=Decimal("0.00"), nullable=False)
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    user: Mapped[User] = relationship(back_populates="accounts")

    __mapper_args__ = {"version_id_col": version_id}
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_account_name"),)


class Category(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[TxnType] = mapped_column(_txn_type_enum(), nullable=False)

    subcategories: Mapped[list["SubCategory"]] = relationship(back_populates="category")


class SubCategory(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id"), nullable=False)
    category_id: Mapped[int] = mapped_column(ForeignKey("category.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    category: Mapped[Category] = relationship(back_populates="subcategories")


class Transaction(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id"), nullable=False)
    account_id: Mapped[int] = mapped_column(ForeignKey("account.id"), nullable=False)
    destination_account_id: Mapped[int | None] = mapped_column(ForeignKey("account.id"))
    sub_category_id: Mapped[int | None] = mapped_column(ForeignKey("subcategory.id", ondelete="SET NULL"))
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    type: Mapped[TxnType] = mapped_column(_txn_type_enum(), nullable=False)
    notes: Mapped[str] = mapped_column(Text, default="", nullable=False)
    transaction_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    account: Mapped[Account] = relationship(foreign_keys=[account_id])
    destination_account: Mapped[Account | None] = relationship(foreign_keys=[destination_account_id])
    sub_category: Mapped[SubCategory | None] = relationship()

    __mapper_args__ = {"version_id_col": version_id}

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transaction_amount_positive"),
        CheckConstraint(
            "destination_account_id IS NULL OR destination_account_id != account_id",
            name="ck_transaction_not_self_transfer",
        ),
        Index("ix_transaction_user_date", "user_id", "transaction_date"),
        Index("ix_transaction_account", "account_id"),
        Index("ix_transaction_destination", "destination_account_id"),
    )

    @property
    def account_ids(self) -> list[int]:
        ids = [self.account_id]
        if self.destination_account_id is not None:
            ids.append(self.destination_account_id)
        return ids
