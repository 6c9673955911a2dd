# app/schemas/notification.py
from datetime import datetime
from typing import List

from pydantic import BaseModel


class Notification(BaseModel):
    id: int
    type: str
    title: str
    message: str | None
    created_at: datetime
    is_read: bool
    related_entity_id: str | None  # ledger entry that produced it

    class Config:
        from_attributes = True


class PaginatedNotifications(BaseModel):
    count: int
    items: List[Notification]
