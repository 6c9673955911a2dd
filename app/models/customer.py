# app/models/customer.py
import enum
import uuid

from sqlalchemy import BigInteger, Column, DateTime, Enum, String, func
from sqlalchemy.orm import relationship

from app.db.session import Base


class Tier(str, enum.Enum):
    SILVER = "SILVER"
    GOLD = "GOLD"
    PLATINUM = "PLATINUM"

    @property
    def rank(self) -> int:
        return TIER_ORDER.index(self)


TIER_ORDER = [Tier.SILVER, Tier.GOLD, Tier.PLATINUM]


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String, nullable=False, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, nullable=True, index=True)
    phone = Column(String, nullable=True)

    tier = Column(Enum(Tier, name="tier"), default=Tier.SILVER, nullable=False)
    # Lifetime spend from completed EARN purchases, minor units
    total_spend_cents = Column(BigInteger, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    cards = relationship("Card", back_populates="customer")
