# app/models/payment.py
import enum
import uuid

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String, Text

from app.db.session import Base
from app.models.transaction import TxCategory
from app.utils.dates import utcnow


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    EXPIRED = "EXPIRED"
    FAILED = "FAILED"


class PaymentPurpose(str, enum.Enum):
    # Cashback is earned on the paid amount
    PURCHASE = "PURCHASE"
    # The paid amount is credited to the card balance
    STORE_CREDIT = "STORE_CREDIT"


class PaymentOutcome(str, enum.Enum):
    SUCCEEDED = "SUCCEEDED"
    PENDING = "PENDING"
    FAILED = "FAILED"


class PendingPayment(Base):
    __tablename__ = "pending_payments"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String, nullable=False, index=True)
    external_reference = Column(String, unique=True, nullable=False, index=True)
    intent_id = Column(String, unique=True, nullable=True)

    purpose = Column(Enum(PaymentPurpose, name="payment_purpose"), nullable=False, default=PaymentPurpose.PURCHASE)
    category = Column(Enum(TxCategory, name="tx_category"), nullable=False, default=TxCategory.PURCHASE)
    card_id = Column(String, ForeignKey("cards.id"), nullable=True)
    customer_id = Column(String, ForeignKey("customers.id"), nullable=True)
    store_id = Column(String, ForeignKey("stores.id"), nullable=True)
    cashier_id = Column(String, nullable=True)

    amount_cents = Column(Integer, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(Enum(PaymentStatus, name="payment_status"), nullable=False, default=PaymentStatus.PENDING)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    transaction_id = Column(String, ForeignKey("transactions.id"), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    failure_reason = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
