# app/crud/card.py
from typing import List

from sqlalchemy.orm import Session

from app.models.card import Card, CardStatus


def get_card(db: Session, tenant_id: str, card_id: str) -> Card | None:
    return db.query(Card).filter(Card.id == card_id, Card.tenant_id == tenant_id).first()


def get_card_by_uid(db: Session, tenant_id: str, card_uid: str) -> Card | None:
    """Looks up a card by the UID printed in its QR code, scoped to the tenant."""
    return db.query(Card).filter(Card.card_uid == card_uid, Card.tenant_id == tenant_id).first()


def card_uid_exists(db: Session, card_uid: str) -> bool:
    return db.query(Card.id).filter(Card.card_uid == card_uid).first() is not None


def lock_card(db: Session, card_id: str) -> Card | None:
    """
    Reads the card row with `SELECT ... FOR UPDATE` and refreshes the
    identity map, so the caller sees the latest committed balance.
    Dialects without row locks (SQLite) rely on the version check in the ledger store.
    """
    return (
        db.query(Card)
        .filter(Card.id == card_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def create_cards(db: Session, tenant_id: str, card_uids: List[str], store_id: str | None = None) -> List[Card]:
    """Adds UNASSIGNED cards to the session. Requires an outer db.commit()."""
    cards = [
        Card(tenant_id=tenant_id, card_uid=uid, store_id=store_id, status=CardStatus.UNASSIGNED, balance_cents=0, version=0)
        for uid in card_uids
    ]
    db.add_all(cards)
    return cards


def get_cards(
    db: Session,
    tenant_id: str,
    status: CardStatus | None = None,
    store_id: str | None = None,
    skip: int = 0,
    limit: int = 50,
) -> List[Card]:
    query = db.query(Card).filter(Card.tenant_id == tenant_id)
    if status:
        query = query.filter(Card.status == status)
    if store_id:
        query = query.filter(Card.store_id == store_id)
    return query.order_by(Card.created_at.desc(), Card.card_uid).offset(skip).limit(limit).all()


def count_cards(db: Session, tenant_id: str, status: CardStatus | None = None, store_id: str | None = None) -> int:
    query = db.query(Card).filter(Card.tenant_id == tenant_id)
    if status:
        query = query.filter(Card.status == status)
    if store_id:
        query = query.filter(Card.store_id == store_id)
    return query.count()
