# app/schemas/card.py
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field, model_validator

from app.models.card import CardStatus
from app.schemas.customer import CustomerCreate


class Card(BaseModel):
    id: str
    card_uid: str
    status: CardStatus
    balance_cents: int
    customer_id: str | None = None
    store_id: str | None = None
    activated_at: datetime | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class CardIssueRequest(BaseModel):
    count: int = Field(..., ge=1, le=1000)
    store_id: str | None = None


class CardActivateRequest(BaseModel):
    store_id: str | None = None  # taken from the token for cashiers
    customer_id: str | None = None
    customer: CustomerCreate | None = None

    @model_validator(mode="after")
    def check_customer(self):
        if bool(self.customer_id) == bool(self.customer):
            raise ValueError("Provide either customer_id or customer details, not both.")
        return self


class CardStoreUpdate(BaseModel):
    store_id: str


class PaginatedCards(BaseModel):
    count: int
    items: List[Card]
