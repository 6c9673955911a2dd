# app/crud/notification.py
from sqlalchemy.orm import Session
from sqlalchemy import update
from app.models.notification import Notification
from typing import List

def create_notification(
    db: Session,
    tenant_id: str,
    customer_id: str,
    type: str,
    title: str,
    message: str | None = None,
    related_entity_id: str | None = None,
) -> Notification:
    """Creates an in-app notification for a customer and commits it."""
    db_notification = Notification(
        tenant_id=tenant_id,
        customer_id=customer_id,
        type=type,
        title=title,
        message=message,
        related_entity_id=related_entity_id,
    )
    db.add(db_notification)
    db.commit()
    db.refresh(db_notification)
    return db_notification

def get_notifications(
    db: Session,
    customer_id: str,
    skip: int = 0,
    limit: int = 20,
    unread_only: bool = False
) -> List[Notification]:
    query = db.query(Notification).filter(Notification.customer_id == customer_id)
    if unread_only:
        query = query.filter(Notification.is_read == False)
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).offset(skip).limit(limit).all()

def count_notifications(db: Session, customer_id: str, unread_only: bool = False) -> int:
    query = db.query(Notification).filter(Notification.customer_id == customer_id)
    if unread_only:
        query = query.filter(Notification.is_read == False)
    return query.count()

def mark_all_notifications_as_read(db: Session, customer_id: str):
    stmt = update(Notification).where(
        Notification.customer_id == customer_id,
        Notification.is_read == False
    ).values(is_read=True)
    db.execute(stmt)
    db.commit()

def get_notification_by_type_and_entity(
    db: Session,
    customer_id: str,
    type: str,
    related_entity_id: str
) -> Notification | None:
    """Looks up an existing notification so the same ledger entry is not announced twice."""
    return db.query(Notification).filter_by(
        customer_id=customer_id,
        type=type,
        related_entity_id=related_entity_id
    ).first()
