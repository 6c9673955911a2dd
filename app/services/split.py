# app/services/split.py
"""
Split payment: part of a purchase paid from the card balance, the rest
through an external payment link.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.core.exceptions import CardNotActive, CardNotFound, InvalidAmount
from app.crud import card as crud_card
from app.models.card import CardStatus
from app.models.payment import PaymentPurpose, PendingPayment
from app.models.transaction import Transaction, TxCategory
from app.services import engine
from app.services import payments as payment_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SplitPlan:
    balance_portion_cents: int
    external_portion_cents: int


@dataclass
class SplitPurchase:
    plan: SplitPlan
    redemption: Transaction | None
    pending: PendingPayment | None


def plan_split(card_balance_cents: int, total_amount_cents: int, requested_balance_use_cents: int) -> SplitPlan:
    """Balance covers as much as was requested, available and owed; the provider covers the rest."""
    engine.validate_positive_amount(total_amount_cents)
    if isinstance(requested_balance_use_cents, bool) or not isinstance(requested_balance_use_cents, int) \
            or requested_balance_use_cents < 0:
        raise InvalidAmount(f"Requested balance use must be zero or more cents, got {requested_balance_use_cents!r}.")
    if card_balance_cents < 0:
        raise InvalidAmount(f"Card balance cannot be negative, got {card_balance_cents}.")

    balance_portion = min(requested_balance_use_cents, card_balance_cents, total_amount_cents)
    return SplitPlan(
        balance_portion_cents=balance_portion,
        external_portion_cents=total_amount_cents - balance_portion,
    )


def start_split_purchase(
    db: Session,
    tenant_id: str,
    card_uid: str,
    total_amount_cents: int,
    requested_balance_use_cents: int,
    category: TxCategory = TxCategory.PURCHASE,
    description: str | None = None,
    *,
    store_id: str | None = None,
    cashier_id: str | None = None,
) -> SplitPurchase:
    """
    Commits the balance REDEEM first, then opens the payment link for the
    remainder. A later failure or expiry of the link does not give the
    redeemed balance back; that takes an explicit ADJUST.
    """
    card = crud_card.get_card_by_uid(db, tenant_id, card_uid)
    if not card:
        raise CardNotFound()
    if card.status != CardStatus.ACTIVE:
        raise CardNotActive(f"Card {card.card_uid} is {card.status.value}.")

    plan = plan_split(card.balance_cents, total_amount_cents, requested_balance_use_cents)

    redemption = None
    if plan.balance_portion_cents > 0:
        redemption = engine.redeem(
            db, tenant_id, card.id, plan.balance_portion_cents,
            note=f"Balance part of a {total_amount_cents} cents purchase",
            store_id=store_id, cashier_id=cashier_id,
        )

    pending = None
    if plan.external_portion_cents > 0:
        pending = payment_service.create_pending(
            db, tenant_id, plan.external_portion_cents,
            card_id=card.id,
            purpose=PaymentPurpose.PURCHASE,
            category=category,
            description=description,
            store_id=store_id,
            cashier_id=cashier_id,
        )

    logger.info(
        f"Split purchase on card {card_uid}: total {total_amount_cents}, "
        f"balance {plan.balance_portion_cents}, external {plan.external_portion_cents}"
    )
    return SplitPurchase(plan=plan, redemption=redemption, pending=pending)
