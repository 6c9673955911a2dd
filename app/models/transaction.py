# app/models/transaction.py
import enum
import uuid

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String, Text, UniqueConstraint

from app.db.session import Base
from app.utils.dates import utcnow


class TxType(str, enum.Enum):
    EARN = "EARN"
    REDEEM = "REDEEM"
    ADJUST = "ADJUST"


class TxCategory(str, enum.Enum):
    PURCHASE = "PURCHASE"
    REPAIR = "REPAIR"
    OTHER = "OTHER"


class Transaction(Base):
    """Immutable ledger entry. One row per balance mutation of a card."""
    __tablename__ = "transactions"
    __table_args__ = (
        # card_version is the card's version right after the mutation,
        # so two entries can never be written against the same prior balance
        UniqueConstraint("card_id", "card_version", name="uq_transactions_card_version"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String, nullable=False, index=True)
    card_id = Column(String, ForeignKey("cards.id"), nullable=False, index=True)
    customer_id = Column(String, ForeignKey("customers.id"), nullable=True, index=True)
    store_id = Column(String, ForeignKey("stores.id"), nullable=True, index=True)
    cashier_id = Column(String, nullable=True)

    type = Column(Enum(TxType, name="tx_type"), nullable=False)
    category = Column(Enum(TxCategory, name="tx_category"), nullable=False, default=TxCategory.OTHER)

    # EARN: purchase amount, REDEEM: redeemed amount, ADJUST: signed delta
    amount_cents = Column(Integer, nullable=False)
    cashback_cents = Column(Integer, nullable=False, default=0)
    balance_before_cents = Column(Integer, nullable=False)
    balance_after_cents = Column(Integer, nullable=False)
    card_version = Column(Integer, nullable=False)

    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
