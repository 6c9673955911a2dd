# app/schemas/customer.py
from datetime import datetime

from pydantic import BaseModel, Field

from app.models.customer import Tier


class CustomerCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: str | None = None
    phone: str | None = None


class Customer(BaseModel):
    id: str
    first_name: str
    last_name: str
    email: str | None = None
    phone: str | None = None
    tier: Tier
    total_spend_cents: int
    created_at: datetime

    class Config:
        from_attributes = True


class TierProgress(BaseModel):
    current_tier: Tier
    current_spend_cents: int
    current_tier_min_cents: int
    next_tier: Tier | None  # null when the top tier is reached
    next_tier_min_cents: int | None
    progress_percent: float
    remaining_to_next_cents: int

    class Config:
        from_attributes = True


class CustomerDashboard(BaseModel):
    customer: Customer
    balance_cents: int
    tier_progress: TierProgress
