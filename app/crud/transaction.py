# app/crud/transaction.py
from datetime import datetime
from typing import List

from sqlalchemy.orm import Session

from app.models.card import Card
from app.models.transaction import Transaction, TxCategory, TxType


def create_transaction(db: Session, **fields) -> Transaction:
    """
    Adds a ledger entry to the session.
    Only app.services.ledger calls this, paired with a balance mutation.
    """
    transaction = Transaction(**fields)
    db.add(transaction)
    return transaction


def get_transaction(db: Session, tenant_id: str, transaction_id: str) -> Transaction | None:
    return db.query(Transaction).filter(
        Transaction.id == transaction_id, Transaction.tenant_id == tenant_id
    ).first()


def get_transaction_by_id(db: Session, transaction_id: str) -> Transaction | None:
    return db.get(Transaction, transaction_id)


def _filtered(
    db: Session,
    tenant_id: str,
    type: TxType | None = None,
    category: TxCategory | None = None,
    customer_id: str | None = None,
    card_uid: str | None = None,
    store_id: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
):
    query = db.query(Transaction).filter(Transaction.tenant_id == tenant_id)
    if type:
        query = query.filter(Transaction.type == type)
    if category:
        query = query.filter(Transaction.category == category)
    if customer_id:
        query = query.filter(Transaction.customer_id == customer_id)
    if card_uid:
        query = query.join(Card, Card.id == Transaction.card_id).filter(Card.card_uid == card_uid)
    if store_id:
        query = query.filter(Transaction.store_id == store_id)
    if date_from:
        query = query.filter(Transaction.created_at >= date_from)
    if date_to:
        query = query.filter(Transaction.created_at <= date_to)
    return query


def get_transactions(db: Session, tenant_id: str, skip: int = 0, limit: int = 50, **filters) -> List[Transaction]:
    """Paginated ledger entries of a tenant, newest first."""
    return (
        _filtered(db, tenant_id, **filters)
        .order_by(Transaction.created_at.desc(), Transaction.card_version.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def count_transactions(db: Session, tenant_id: str, **filters) -> int:
    return _filtered(db, tenant_id, **filters).count()


def get_card_transactions_chronological(db: Session, card_id: str) -> List[Transaction]:
    """All entries of a card in mutation order (oldest first)."""
    return db.query(Transaction).filter(
        Transaction.card_id == card_id
    ).order_by(Transaction.card_version.asc()).all()
