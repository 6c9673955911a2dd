# app/schemas/rules.py
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from app.models.customer import Tier
from app.models.transaction import TxCategory


class CashbackRuleUpdate(BaseModel):
    base_rate_bps: int = Field(..., ge=0)
    is_active: bool = True


class TierRuleUpdate(BaseModel):
    min_total_spend_cents: int = Field(..., ge=0)
    bonus_rate_bps: int = Field(..., ge=0)
    is_active: bool = True


class OfferCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    rate_bps: int
    start_at: datetime
    end_at: datetime


class OfferStatusUpdate(BaseModel):
    is_active: bool


class CashbackRule(BaseModel):
    category: TxCategory
    base_rate_bps: int
    is_active: bool

    class Config:
        from_attributes = True


class TierRule(BaseModel):
    tier: Tier
    min_total_spend_cents: int
    bonus_rate_bps: int
    is_active: bool

    class Config:
        from_attributes = True


class Offer(BaseModel):
    id: str | None = None
    name: str
    rate_bps: int
    start_at: datetime
    end_at: datetime
    is_active: bool

    class Config:
        from_attributes = True


class RuleSetResponse(BaseModel):
    cashback_rules: List[CashbackRule]
    tier_rules: List[TierRule]
    offers: List[Offer]
