from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import TxnType
from .services.intents import TransactionIntent, build_intent


class AccountCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    balance: Decimal = Decimal("0")

    # owner always comes from the caller context; a user_id in the body is dropped
    model_config = ConfigDict(extra="ignore")


class AccountUpdate(BaseModel):
    name: str = Field(min_length=1, max_length=255)

    # balance changes only through transactions; a balance in the body is dropped
    model_config = ConfigDict(extra="ignore")


class AccountOut(BaseModel):
    id: int
    user_id: int
    name: str
    balance: Decimal
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TransactionInput(BaseModel):
    """Body of create and (full replace) update requests."""

    account_id: int
    sub_category_id: Optional[int] = None
    amount: Decimal
    type: TxnType
    notes: Optional[str] = None
    transaction_date: datetime
    destination_account_id: Optional[int] = None

    model_config = ConfigDict(extra="ignore")

    def to_intent(self) -> TransactionIntent:
        return build_intent(
            type=self.type,
            account_id=self.account_id,
            amount=self.amount,
            transaction_date=self.transaction_date,
            notes=self.notes,
            sub_category_id=self.sub_category_id,
            destination_account_id=self.destination_account_id,
        )


class TransactionOut(BaseModel):
    id: int
    user_id: int
    account_id: int
    destination_account_id: Optional[int]
    sub_category_id: Optional[int]
    amount: Decimal
    type: TxnType
    notes: str
    transaction_date: datetime
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
