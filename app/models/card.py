# app/models/card.py
import enum
import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, Enum, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from app.db.session import Base


class CardStatus(str, enum.Enum):
    UNASSIGNED = "UNASSIGNED"
    ACTIVE = "ACTIVE"
    BLOCKED = "BLOCKED"


class Card(Base):
    __tablename__ = "cards"
    __table_args__ = (
        CheckConstraint("balance_cents >= 0", name="ck_cards_balance_non_negative"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String, nullable=False, index=True)
    # Printed in the QR code
    card_uid = Column(String(32), unique=True, nullable=False, index=True)
    customer_id = Column(String, ForeignKey("customers.id"), nullable=True, index=True)
    store_id = Column(String, ForeignKey("stores.id"), nullable=True)
    status = Column(Enum(CardStatus, name="card_status"), default=CardStatus.UNASSIGNED, nullable=False)

    # Changed only through app.services.ledger.apply_mutation
    balance_cents = Column(Integer, default=0, nullable=False)
    version = Column(Integer, default=0, nullable=False)

    activated_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    customer = relationship("Customer", back_populates="cards")
    store = relationship("Store")
