# app/schemas/payment.py
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from app.models.payment import PaymentPurpose, PaymentStatus
from app.models.transaction import TxCategory
from app.schemas.transaction import Transaction


class PendingPaymentCreate(BaseModel):
    amount_cents: int = Field(..., strict=True)
    card_uid: str | None = None
    purpose: PaymentPurpose = PaymentPurpose.PURCHASE
    category: TxCategory = TxCategory.PURCHASE
    description: str | None = Field(None, max_length=500)
    expires_at: datetime | None = None


class PendingPayment(BaseModel):
    id: str
    external_reference: str
    purpose: PaymentPurpose
    category: TxCategory
    card_id: str | None = None
    amount_cents: int
    description: str | None = None
    status: PaymentStatus
    expires_at: datetime
    transaction_id: str | None = None
    completed_at: datetime | None = None
    failure_reason: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class PaymentLink(BaseModel):
    """Public view of a payment link, shown to the payer."""
    external_reference: str
    amount_cents: int
    description: str | None = None
    status: PaymentStatus
    expires_at: datetime

    class Config:
        from_attributes = True


class CheckoutResponse(BaseModel):
    external_reference: str
    intent_id: str
    client_secret: str | None = None
    amount_cents: int


class PaymentResolution(BaseModel):
    payment: PendingPayment
    transaction: Transaction | None = None


class PaginatedPendingPayments(BaseModel):
    count: int
    items: List[PendingPayment]


class SplitPurchaseRequest(BaseModel):
    card_uid: str
    total_amount_cents: int = Field(..., strict=True)
    requested_balance_use_cents: int = Field(..., strict=True)
    category: TxCategory = TxCategory.PURCHASE
    description: str | None = Field(None, max_length=500)


class SplitPurchaseResponse(BaseModel):
    balance_portion_cents: int
    external_portion_cents: int
    redemption: Transaction | None = None
    pending_payment: PendingPayment | None = None
