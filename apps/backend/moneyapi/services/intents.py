"""
Transaction intents and their balance effects.

An intent is what a caller wants recorded. There are exactly three kinds,
each with its own required fields:

- ``ExpenseIntent``: source account + sub-category, no destination
- ``IncomeIntent``: source account + sub-category, no destination
- ``TransferIntent``: source + distinct destination, sub-category optional

``BalanceEffect.deltas`` is the only place the sign convention lives; the
engine multiplies it by ``Phase.APPLY`` or ``Phase.REVERT``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import IntEnum
from typing import Any, ClassVar, Union

from moneyapi import errors
from moneyapi.models import CENT, MAX_MONEY, TxnType


class Phase(IntEnum):
    APPLY = 1
    REVERT = -1


# (source sign, destination sign)
_SIGNS: dict[TxnType, tuple[int, int]] = {
    TxnType.EXPENSE: (-1, 0),
    TxnType.INCOME: (1, 0),
    TxnType.TRANSFER: (-1, 1),
}


def check_money(value: Decimal, field: str = "amount") -> Decimal:
    """Reject anything a ``Numeric(15, 2)`` column would not store exactly."""
    if not isinstance(value, Decimal) or not value.is_finite():
        raise errors.ValidationError(f"{field} must be a finite decimal")
    if abs(value) > MAX_MONEY:
        raise errors.ValidationError(f"{field} must not exceed {MAX_MONEY}")
    if value != value.quantize(CENT):
        raise errors.ValidationError(f"{field} must have at most 2 decimal places")
    return value


@dataclass(frozen=True)
class BalanceEffect:
    """The ledger-relevant projection of a transaction."""

    type: TxnType
    account_id: int
    destination_account_id: int | None
    amount: Decimal

    @classmethod
    def of(cls, txn: Any) -> "BalanceEffect":
        """Projection of a stored ``models.Transaction`` (or anything shaped like one)."""
        return cls(
            type=TxnType(txn.type),
            account_id=txn.account_id,
            destination_account_id=txn.destination_account_id,
            amount=Decimal(txn.amount),
        )

    def deltas(self, phase: Phase = Phase.APPLY) -> list[tuple[int, Decimal]]:
        source_sign, destination_sign = _SIGNS[self.type]
        out = [(self.account_id, self.amount * source_sign * phase)]
        if destination_sign:
            if self.destination_account_id is None:
                raise errors.IntegrityFault("transfer has no destination account")
            out.append((self.destination_account_id, self.amount * destination_sign * phase))
        return out


@dataclass(frozen=True, kw_only=True)
class _Intent:
    account_id: int
    amount: Decimal
    transaction_date: datetime
    notes: str = ""

    type: ClassVar[TxnType]

    def __post_init__(self) -> None:
        check_money(self.amount)
        if self.amount <= 0:
            raise errors.ValidationError("amount must be greater than 0")

    @property
    def effect(self) -> BalanceEffect:
        return BalanceEffect(self.type, self.account_id, self.destination_account_id, self.amount)

    @property
    def account_ids(self) -> list[int]:
        return [account_id for account_id, _ in self.effect.deltas()]

    def record_fields(self) -> dict[str, Any]:
        """Column values of the Transaction row this intent produces; every field is replaced."""
        return {
            "type": self.type,
            "account_id": self.account_id,
            "destination_account_id": self.destination_account_id,
            "sub_category_id": self.sub_category_id,
            "amount": self.amount,
            "notes": self.notes,
            "transaction_date": self.transaction_date,
        }


@dataclass(frozen=True, kw_only=True)
class ExpenseIntent(_Intent):
    sub_category_id: int

    type: ClassVar[TxnType] = TxnType.EXPENSE
    destination_account_id: ClassVar[None] = None


@dataclass(frozen=True, kw_only=True)
class IncomeIntent(_Intent):
    sub_category_id: int

    type: ClassVar[TxnType] = TxnType.INCOME
    destination_account_id: ClassVar[None] = None


@dataclass(frozen=True, kw_only=True)
class TransferIntent(_Intent):
    destination_account_id: int
    sub_category_id: int | None = None

    type: ClassVar[TxnType] = TxnType.TRANSFER

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.destination_account_id == self.account_id:
            raise errors.ValidationError("source and destination accounts cannot be the same")


TransactionIntent = Union[ExpenseIntent, IncomeIntent, TransferIntent]


def coerce_money(value: Any, field: str = "amount") -> Decimal:
    """Decimal from loose input; floats go through ``str`` to avoid binary noise."""
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise errors.ValidationError(f"{field} must be a number") from None


def build_intent(
    *,
    type: TxnType | str,
    account_id: int,
    amount: Decimal | int | float | str,
    transaction_date: datetime,
    notes: str | None = None,
    sub_category_id: int | None = None,
    destination_account_id: int | None = None,
) -> TransactionIntent:
    """Validate loose input and return the matching intent.

    Raises ``errors.ValidationError`` for anything that violates the per-type
    field rules; nothing has touched the store at that point.
    """
    try:
        txn_type = TxnType(type)
    except ValueError:
        raise errors.ValidationError("invalid transaction type") from None

    common = {
        "account_id": account_id,
        "amount": coerce_money(amount),
        "transaction_date": transaction_date,
        "notes": notes or "",
    }

    if txn_type is TxnType.TRANSFER:
        if destination_account_id is None:
            raise errors.ValidationError("destination_account_id is required for transfers")
        return TransferIntent(
            destination_account_id=destination_account_id,
            sub_category_id=sub_category_id,
            **common,
        )

    if sub_category_id is None:
        raise errors.ValidationError(f"sub_category_id is required for {txn_type.value}")
    if destination_account_id is not None:
        raise errors.ValidationError("destination_account_id is only allowed for transfers")
    if txn_type is TxnType.EXPENSE:
        return ExpenseIntent(sub_category_id=sub_category_id, **common)
    return IncomeIntent(sub_category_id=sub_category_id, **common)
