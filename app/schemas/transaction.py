# app/schemas/transaction.py
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from app.models.transaction import TxCategory, TxType


class Transaction(BaseModel):
    id: str
    card_id: str
    customer_id: str | None = None
    store_id: str | None = None
    cashier_id: str | None = None
    type: TxType
    category: TxCategory
    amount_cents: int
    cashback_cents: int
    balance_before_cents: int
    balance_after_cents: int
    note: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class EarnRequest(BaseModel):
    card_uid: str
    category: TxCategory = TxCategory.PURCHASE
    # Strict so that 12.5 or "100" are rejected instead of coerced
    purchase_amount_cents: int = Field(..., strict=True)
    description: str | None = Field(None, max_length=500)


class RedeemRequest(BaseModel):
    card_uid: str
    amount_cents: int = Field(..., strict=True)
    note: str | None = Field(None, max_length=500)


class AdjustRequest(BaseModel):
    card_uid: str
    amount_cents: int = Field(..., strict=True)  # signed
    note: str = Field(..., min_length=1, max_length=500)


class PaginatedTransactions(BaseModel):
    count: int
    items: List[Transaction]


class LedgerVerification(BaseModel):
    card_id: str
    stored_balance: int
    replayed_balance: int
    entries: int
    broken_links: List[str]
    is_consistent: bool

    class Config:
        from_attributes = True
