# app/services/engine.py
"""
Transaction engine: EARN / REDEEM / ADJUST on a card.

The public functions own the database transaction (through
`ledger.run_atomic`) and notify the customer after the commit. The
underscored variants only flush, so the pending payment bridge can run
them inside its own atomic unit.
"""

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import CardNotActive, CardNotFound, CardNotLinked, CardStoreMismatch, InvalidAmount
from app.crud import card as crud_card
from app.crud import customer as crud_customer
from app.models.card import Card, CardStatus
from app.models.customer import Tier
from app.models.transaction import Transaction, TxCategory, TxType
from app.services import ledger
from app.services import notification as notification_service
from app.services import rates as rate_service
from app.services import tiers as tier_service
from app.utils.dates import utcnow

logger = logging.getLogger(__name__)


def validate_positive_amount(amount_cents) -> int:
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int) or amount_cents <= 0:
        raise InvalidAmount(f"Amount must be a positive whole number of cents, got {amount_cents!r}.")
    return amount_cents


def _load_mutable_card(db: Session, tenant_id: str, card_id: str, store_id: str | None) -> Card:
    """Locks the card row and checks it may take a balance mutation."""
    card = crud_card.lock_card(db, card_id)
    if card is None or card.tenant_id != tenant_id:
        raise CardNotFound()
    if card.status != CardStatus.ACTIVE:
        raise CardNotActive(f"Card {card.card_uid} is {card.status.value}.")
    if store_id and card.store_id and card.store_id != store_id:
        raise CardStoreMismatch(f"Card {card.card_uid} can only be used at its own store.")
    return card


def _earn(
    db: Session,
    tenant_id: str,
    card_id: str,
    category: TxCategory,
    purchase_amount_cents: int,
    description: str | None = None,
    store_id: str | None = None,
    cashier_id: str | None = None,
    at: datetime | None = None,
) -> Transaction:
    card = _load_mutable_card(db, tenant_id, card_id, store_id)
    customer = card.customer
    rules = rate_service.load_rule_set(db, tenant_id)

    tier = Tier(customer.tier) if customer else Tier(settings.DEFAULT_TIER)
    rate_bps = rate_service.resolve_rate(rules, category, tier, at or utcnow())
    cashback_cents = rate_service.calculate_cashback(purchase_amount_cents, rate_bps)

    entry = ledger.post_entry(db, card, ledger.TransactionDraft(
        tenant_id=tenant_id,
        card_id=card.id,
        customer_id=card.customer_id,
        store_id=store_id or card.store_id,
        cashier_id=cashier_id,
        type=TxType.EARN,
        category=TxCategory(category),
        amount_cents=purchase_amount_cents,
        cashback_cents=cashback_cents,
        note=description,
    ))

    if customer:
        crud_customer.increment_total_spend(db, customer.id, purchase_amount_cents)
        db.refresh(customer)
        tier_service.reevaluate_tier(db, customer, rules)
        db.flush()

    logger.info(
        f"EARN card {card.card_uid}: purchase {purchase_amount_cents}, rate {rate_bps} bps, "
        f"cashback {cashback_cents}, balance {entry.balance_before_cents} -> {entry.balance_after_cents}"
    )
    return entry


def _redeem(
    db: Session,
    tenant_id: str,
    card_id: str,
    amount_cents: int,
    note: str | None = None,
    store_id: str | None = None,
    cashier_id: str | None = None,
) -> Transaction:
    card = _load_mutable_card(db, tenant_id, card_id, store_id)
    if not card.customer_id:
        raise CardNotLinked()

    entry = ledger.post_entry(db, card, ledger.TransactionDraft(
        tenant_id=tenant_id,
        card_id=card.id,
        customer_id=card.customer_id,
        store_id=store_id or card.store_id,
        cashier_id=cashier_id,
        type=TxType.REDEEM,
        category=TxCategory.OTHER,
        amount_cents=amount_cents,
        note=note,
    ))
    logger.info(
        f"REDEEM card {card.card_uid}: {amount_cents}, balance {entry.balance_before_cents} -> {entry.balance_after_cents}"
    )
    return entry


def _adjust(
    db: Session,
    tenant_id: str,
    card_id: str,
    signed_amount_cents: int,
    note: str,
    store_id: str | None = None,
    cashier_id: str | None = None,
) -> Transaction:
    card = _load_mutable_card(db, tenant_id, card_id, store_id)

    entry = ledger.post_entry(db, card, ledger.TransactionDraft(
        tenant_id=tenant_id,
        card_id=card.id,
        customer_id=card.customer_id,
        store_id=store_id or card.store_id,
        cashier_id=cashier_id,
        type=TxType.ADJUST,
        category=TxCategory.OTHER,
        amount_cents=signed_amount_cents,
        note=note,
    ))
    logger.info(
        f"ADJUST card {card.card_uid}: {signed_amount_cents:+d}, balance {entry.balance_before_cents} -> {entry.balance_after_cents}"
    )
    return entry


def earn(
    db: Session,
    tenant_id: str,
    card_id: str,
    category: TxCategory,
    purchase_amount_cents: int,
    description: str | None = None,
    *,
    store_id: str | None = None,
    cashier_id: str | None = None,
    at: datetime | None = None,
) -> Transaction:
    """Credits cashback for a purchase, then grows lifetime spend and re-evaluates the tier."""
    validate_positive_amount(purchase_amount_cents)
    category = TxCategory(category)
    entry = ledger.run_atomic(db, lambda: _earn(
        db, tenant_id, card_id, category, purchase_amount_cents, description, store_id, cashier_id, at
    ))
    notification_service.notify_balance_change(db, entry)
    return entry


def redeem(
    db: Session,
    tenant_id: str,
    card_id: str,
    amount_cents: int,
    *,
    note: str | None = None,
    store_id: str | None = None,
    cashier_id: str | None = None,
) -> Transaction:
    """Spends card balance. Rejected with InsufficientBalance and no side effects when it would go negative."""
    validate_positive_amount(amount_cents)
    entry = ledger.run_atomic(db, lambda: _redeem(db, tenant_id, card_id, amount_cents, note, store_id, cashier_id))
    notification_service.notify_balance_change(db, entry)
    return entry


def adjust(
    db: Session,
    tenant_id: str,
    card_id: str,
    signed_amount_cents: int,
    note: str,
    *,
    store_id: str | None = None,
    cashier_id: str | None = None,
) -> Transaction:
    """Administrative balance change in either direction."""
    if isinstance(signed_amount_cents, bool) or not isinstance(signed_amount_cents, int) or signed_amount_cents == 0:
        raise InvalidAmount(f"Adjustment must be a non-zero whole number of cents, got {signed_amount_cents!r}.")
    entry = ledger.run_atomic(db, lambda: _adjust(db, tenant_id, card_id, signed_amount_cents, note, store_id, cashier_id))
    notification_service.notify_balance_change(db, entry)
    return entry
