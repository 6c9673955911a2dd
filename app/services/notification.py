# app/services/notification.py

import logging

from sqlalchemy.orm import Session

from app.crud import notification as crud_notification
from app.models.notification import Notification
from app.models.transaction import Transaction, TxType

logger = logging.getLogger(__name__)


def _format_cents(cents: int) -> str:
    return f"{cents / 100:.2f}"


def _build_message(transaction: Transaction) -> tuple[str, str, str]:
    balance = _format_cents(transaction.balance_after_cents)
    if transaction.type == TxType.EARN:
        return (
            "cashback_earned",
            "Cashback earned",
            f"You earned {_format_cents(transaction.cashback_cents)} on a "
            f"{_format_cents(transaction.amount_cents)} purchase. New balance: {balance}.",
        )
    if transaction.type == TxType.REDEEM:
        return (
            "cashback_redeemed",
            "Balance redeemed",
            f"{_format_cents(transaction.amount_cents)} was redeemed from your card. New balance: {balance}.",
        )
    return (
        "balance_adjusted",
        "Balance updated",
        f"Your balance changed by {_format_cents(transaction.amount_cents)}. New balance: {balance}.",
    )


def notify_balance_change(db: Session, transaction: Transaction) -> Notification | None:
    """
    Fire-and-forget customer notification for a committed ledger entry.
    Runs in its own commit after the ledger commit; failures are logged and
    rolled back, the ledger entry is never affected.
    """
    if not transaction.customer_id:
        return None

    try:
        type, title, message = _build_message(transaction)
        existing = crud_notification.get_notification_by_type_and_entity(
            db, customer_id=transaction.customer_id, type=type, related_entity_id=transaction.id
        )
        if existing:
            return existing
        return crud_notification.create_notification(
            db,
            tenant_id=transaction.tenant_id,
            customer_id=transaction.customer_id,
            type=type,
            title=title,
            message=message,
            related_entity_id=transaction.id,
        )
    except Exception:
        logger.error(f"Failed to notify customer {transaction.customer_id} about transaction {transaction.id}", exc_info=True)
        db.rollback()
        return None
