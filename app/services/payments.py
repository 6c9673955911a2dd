# app/services/payments.py
"""
Pending payment bridge.

A PendingPayment stands for money collected by the external payment
provider (QR payment link or card terminal). `resolve` is the single
place where a confirmation turns into a ledger entry; it is idempotent
per external reference, so webhook retries, duplicate deliveries and
client polling can all call it safely.
"""

import enum
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from app.clients.payment_gateway import PaymentGatewayClient
from app.core.config import settings
from app.core.exceptions import (
    CardNotActive,
    CardNotFound,
    CardStoreMismatch,
    ConcurrentMutationConflict,
    DuplicatePaymentEvent,
    InvalidPaymentRequest,
    PaymentExpired,
    PaymentNotPending,
    PendingPaymentNotFound,
)
from app.crud import card as crud_card
from app.crud import payment as crud_payment
from app.crud import transaction as crud_transaction
from app.models.card import CardStatus
from app.models.payment import PaymentOutcome, PaymentPurpose, PaymentStatus, PendingPayment
from app.models.transaction import Transaction, TxCategory
from app.services import engine
from app.services import ledger
from app.services import notification as notification_service
from app.utils.dates import as_utc, utcnow

logger = logging.getLogger(__name__)


class _Result(str, enum.Enum):
    APPLIED = "applied"
    DUPLICATE = "duplicate"
    FAILED = "failed"
    EXPIRED = "expired"


@dataclass
class _Resolution:
    result: _Result
    transaction_id: str | None = None


@dataclass(frozen=True)
class CheckoutSession:
    pending: PendingPayment
    intent_id: str
    client_secret: str | None


def _generate_reference() -> str:
    return secrets.token_urlsafe(24)


def is_expired(pending: PendingPayment, now: datetime | None = None) -> bool:
    return as_utc(pending.expires_at) <= (now or utcnow())


def get_pending_by_reference(db: Session, external_reference: str) -> PendingPayment:
    pending = crud_payment.get_by_reference(db, external_reference)
    if not pending:
        raise PendingPaymentNotFound()
    return pending


def create_pending(
    db: Session,
    tenant_id: str,
    amount_cents: int,
    expires_at: datetime | None = None,
    *,
    card_id: str | None = None,
    purpose: PaymentPurpose = PaymentPurpose.PURCHASE,
    category: TxCategory = TxCategory.PURCHASE,
    description: str | None = None,
    store_id: str | None = None,
    cashier_id: str | None = None,
) -> PendingPayment:
    """Registers an externally collected payment that will be resolved later."""
    engine.validate_positive_amount(amount_cents)
    purpose = PaymentPurpose(purpose)
    now = utcnow()
    expires_at = as_utc(expires_at) if expires_at else now + timedelta(hours=settings.PAYMENT_LINK_TTL_HOURS)
    if expires_at <= now:
        raise InvalidPaymentRequest("expires_at must be in the future.")

    customer_id = None
    if card_id:
        card = crud_card.get_card(db, tenant_id, card_id)
        if not card:
            raise CardNotFound()
        if card.status != CardStatus.ACTIVE:
            raise CardNotActive(f"Card {card.card_uid} is {card.status.value}.")
        if store_id and card.store_id and card.store_id != store_id:
            raise CardStoreMismatch(f"Card {card.card_uid} can only be used at its own store.")
        customer_id = card.customer_id
    elif purpose == PaymentPurpose.STORE_CREDIT:
        raise InvalidPaymentRequest("Store credit requires a target card.")

    pending = crud_payment.create_pending_payment(
        db,
        tenant_id=tenant_id,
        external_reference=_generate_reference(),
        purpose=purpose,
        category=TxCategory(category),
        card_id=card_id,
        customer_id=customer_id,
        store_id=store_id,
        cashier_id=cashier_id,
        amount_cents=amount_cents,
        description=description,
        status=PaymentStatus.PENDING,
        expires_at=expires_at,
    )
    db.commit()
    db.refresh(pending)
    logger.info(
        f"Created pending payment {pending.id} ({purpose.value}) for {amount_cents} cents, "
        f"card {card_id}, expires {expires_at.isoformat()}"
    )
    return pending


def _credit(db: Session, pending: PendingPayment) -> Transaction | None:
    """Ledger effect of a confirmed payment, inside the caller's unit."""
    if pending.card_id is None:
        # Cash-style sale without a card: nothing to credit
        return None
    note = f"{pending.purpose.value} payment {pending.external_reference}"
    if pending.description:
        note = f"{note}: {pending.description}"

    if pending.purpose == PaymentPurpose.STORE_CREDIT:
        return engine._adjust(
            db, pending.tenant_id, pending.card_id, pending.amount_cents, note,
            store_id=pending.store_id, cashier_id=pending.cashier_id,
        )
    return engine._earn(
        db, pending.tenant_id, pending.card_id, pending.category, pending.amount_cents, note,
        store_id=pending.store_id, cashier_id=pending.cashier_id,
    )


def resolve(
    db: Session,
    external_reference: str,
    outcome: PaymentOutcome,
    *,
    at: datetime | None = None,
    failure_reason: str | None = None,
) -> Transaction | None:
    """
    Applies a payment outcome exactly once.

    - first SUCCEEDED: PENDING (or FAILED) -> COMPLETED and one ledger entry;
    - repeated SUCCEEDED: returns the entry created the first time;
    - any delivery after expiry on a non-completed payment: -> EXPIRED,
      no credit, SUCCEEDED raises PaymentExpired;
    - FAILED: PENDING -> FAILED, never touches the ledger.
    The status transition is a compare-and-set in the same database
    transaction as the ledger mutation, so concurrent deliveries cannot both win.
    """
    outcome = PaymentOutcome(outcome)
    if outcome == PaymentOutcome.PENDING:
        return None

    def operation() -> _Resolution:
        pending = crud_payment.get_by_reference(db, external_reference, for_update=True)
        if not pending:
            raise PendingPaymentNotFound()
        now = at or utcnow()

        if pending.status == PaymentStatus.COMPLETED:
            return _Resolution(_Result.DUPLICATE, pending.transaction_id)
        if pending.status == PaymentStatus.EXPIRED:
            return _Resolution(_Result.EXPIRED)

        if is_expired(pending, now):
            crud_payment.transition_status(
                db, pending.id, (PaymentStatus.PENDING, PaymentStatus.FAILED), PaymentStatus.EXPIRED, updated_at=now
            )
            return _Resolution(_Result.EXPIRED)

        if outcome == PaymentOutcome.FAILED:
            if pending.status == PaymentStatus.FAILED:
                return _Resolution(_Result.DUPLICATE)
            crud_payment.transition_status(
                db, pending.id, (PaymentStatus.PENDING,), PaymentStatus.FAILED,
                failure_reason=failure_reason, updated_at=now,
            )
            return _Resolution(_Result.FAILED)

        claimed = crud_payment.transition_status(
            db, pending.id, (PaymentStatus.PENDING, PaymentStatus.FAILED), PaymentStatus.COMPLETED,
            completed_at=now, updated_at=now,
        )
        if not claimed:
            # Another delivery moved the row first; the retry will see its final state
            raise ConcurrentMutationConflict()

        entry = _credit(db, pending)
        if entry is not None:
            crud_payment.transition_status(
                db, pending.id, (PaymentStatus.COMPLETED,), PaymentStatus.COMPLETED, transaction_id=entry.id
            )
        return _Resolution(_Result.APPLIED, entry.id if entry else None)

    resolution = ledger.run_atomic(db, operation)

    if resolution.result == _Result.EXPIRED:
        logger.warning(f"Payment {external_reference} arrived after expiry ({outcome.value}); not credited.")
        if outcome == PaymentOutcome.SUCCEEDED:
            raise PaymentExpired()
        return None

    if resolution.result == _Result.DUPLICATE:
        logger.info(f"{DuplicatePaymentEvent.detail} reference={external_reference} outcome={outcome.value}")
        if resolution.transaction_id:
            return crud_transaction.get_transaction_by_id(db, resolution.transaction_id)
        return None

    if resolution.result == _Result.FAILED:
        logger.info(f"Payment {external_reference} failed: {failure_reason}")
        return None

    logger.info(f"Payment {external_reference} completed, transaction {resolution.transaction_id}")
    if resolution.transaction_id is None:
        return None
    entry = crud_transaction.get_transaction_by_id(db, resolution.transaction_id)
    notification_service.notify_balance_change(db, entry)
    return entry


def _expire_lazily(db: Session, pending: PendingPayment) -> None:
    now = utcnow()
    if pending.status == PaymentStatus.PENDING and is_expired(pending, now):
        crud_payment.transition_status(db, pending.id, (PaymentStatus.PENDING,), PaymentStatus.EXPIRED, updated_at=now)
        db.commit()
        db.refresh(pending)
        logger.info(f"Pending payment {pending.id} expired on observation.")
        raise PaymentExpired()


async def start_checkout(db: Session, external_reference: str, gateway: PaymentGatewayClient) -> CheckoutSession:
    """Creates a provider payment intent for a payment link. No lock is held across the provider call."""
    pending = get_pending_by_reference(db, external_reference)
    _expire_lazily(db, pending)
    if pending.status != PaymentStatus.PENDING:
        raise PaymentNotPending(f"Payment is {pending.status.value}.")

    intent = await gateway.create_intent(
        pending.amount_cents,
        metadata={"external_reference": pending.external_reference, "tenant_id": pending.tenant_id},
    )

    pending.intent_id = intent.intent_id
    db.add(pending)
    db.commit()
    db.refresh(pending)
    logger.info(f"Payment intent {intent.intent_id} created for pending payment {pending.id}")
    return CheckoutSession(pending=pending, intent_id=intent.intent_id, client_secret=intent.client_secret)


async def confirm_from_gateway(
    db: Session, external_reference: str, gateway: PaymentGatewayClient
) -> tuple[PendingPayment, Transaction | None]:
    """
    Client-polling confirmation: asks the provider for the intent status and
    feeds a final status into `resolve`. Safe to call any number of times.
    """
    pending = get_pending_by_reference(db, external_reference)

    if pending.status == PaymentStatus.COMPLETED:
        transaction = crud_transaction.get_transaction_by_id(db, pending.transaction_id) if pending.transaction_id else None
        return pending, transaction
    if not pending.intent_id:
        _expire_lazily(db, pending)
        return pending, None

    status = await gateway.get_intent_status(pending.intent_id)
    transaction = resolve(db, external_reference, status)
    db.refresh(pending)
    return pending, transaction


def expire_overdue_payments(db: Session, now: datetime | None = None) -> int:
    """Sweeps PENDING payments past their expiry to EXPIRED."""
    expired = crud_payment.expire_overdue(db, now or utcnow())
    db.commit()
    if expired:
        logger.info(f"Expired {expired} overdue pending payments.")
    return expired
