# app/models/rules.py
import uuid

from sqlalchemy import Boolean, Column, DateTime, Enum, Integer, String, UniqueConstraint, func

from app.db.session import Base
from app.models.customer import Tier
from app.models.transaction import TxCategory


class CashbackRule(Base):
    __tablename__ = "cashback_rules"
    __table_args__ = (UniqueConstraint("tenant_id", "category", name="uq_cashback_rules_tenant_category"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String, nullable=False, index=True)
    category = Column(Enum(TxCategory, name="tx_category"), nullable=False)
    base_rate_bps = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False, server_default='true')
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class TierRule(Base):
    __tablename__ = "tier_rules"
    __table_args__ = (UniqueConstraint("tenant_id", "tier", name="uq_tier_rules_tenant_tier"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String, nullable=False, index=True)
    tier = Column(Enum(Tier, name="tier"), nullable=False)
    min_total_spend_cents = Column(Integer, nullable=False, default=0)
    bonus_rate_bps = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False, server_default='true')
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Offer(Base):
    __tablename__ = "offers"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    rate_bps = Column(Integer, nullable=False, default=0)
    # Half-open window [start_at, end_at)
    start_at = Column(DateTime(timezone=True), nullable=False)
    end_at = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, server_default='true')
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
