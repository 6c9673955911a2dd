# app/routers/webhooks.py

import json
import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.clients.payment_gateway import verify_signature
from app.core.config import settings
from app.core.exceptions import PaymentExpired, PendingPaymentNotFound
from app.crud import payment as crud_payment
from app.dependencies import get_db
from app.models.payment import PaymentOutcome
from app.services import payments as payment_service

logger = logging.getLogger(__name__)

# Mounted with the /internal/webhooks prefix in main.py
payment_webhook_router = APIRouter()

EVENT_OUTCOMES = {
    "payment_intent.succeeded": PaymentOutcome.SUCCEEDED,
    "payment_intent.payment_failed": PaymentOutcome.FAILED,
    "payment_intent.canceled": PaymentOutcome.FAILED,
}


# --- Signature check ---
async def verify_payment_signature(
    request: Request,
    x_payment_signature: str | None = Header(None),
) -> bytes:
    """Checks the `t=...,v1=...` HMAC header and hands the raw body to the endpoint."""
    raw_body = await request.body()

    if not settings.PAYMENT_WEBHOOK_SECRET:
        logger.error("PAYMENT_WEBHOOK_SECRET is not configured; refusing payment webhook.")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Webhook secret not configured")

    if not verify_signature(
        raw_body,
        x_payment_signature,
        settings.PAYMENT_WEBHOOK_SECRET,
        settings.PAYMENT_WEBHOOK_TOLERANCE_SECONDS,
    ):
        logger.warning("Payment webhook rejected: invalid or stale signature.")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook signature")
    return raw_body


def _extract_reference(db: Session, intent: dict) -> str | None:
    reference = (intent.get("metadata") or {}).get("external_reference")
    if reference:
        return reference
    # Terminal payments may only carry the intent id
    intent_id = intent.get("id")
    if intent_id:
        pending = crud_payment.get_by_intent_id(db, intent_id)
        if pending:
            return pending.external_reference
    return None


@payment_webhook_router.post("/payments")
def payment_webhook(
    raw_body: bytes = Depends(verify_payment_signature),
    db: Session = Depends(get_db),
):
    """
    Payment provider events. Well-signed events are acknowledged with 200
    unless the ledger rejected the credit, in which case the error status
    makes the provider deliver the event again later.
    """
    try:
        event = json.loads(raw_body)
    except json.JSONDecodeError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON payload")

    event_type = event.get("type")
    outcome = EVENT_OUTCOMES.get(event_type)
    if outcome is None:
        logger.debug(f"Ignoring payment event type '{event_type}'")
        return {"status": "ignored"}

    intent = (event.get("data") or {}).get("object") or {}
    reference = _extract_reference(db, intent)
    if not reference:
        logger.warning(f"Payment event {event.get('id')} ({event_type}) carries no known reference.")
        return {"status": "ignored"}

    failure_reason = None
    if outcome == PaymentOutcome.FAILED:
        failure_reason = (intent.get("last_payment_error") or {}).get("message") or event_type

    try:
        transaction = payment_service.resolve(db, reference, outcome, failure_reason=failure_reason)
    except PendingPaymentNotFound:
        logger.warning(f"Payment event {event.get('id')} for unknown reference {reference}.")
        return {"status": "ignored"}
    except PaymentExpired:
        return {"status": "expired"}

    logger.info(f"Payment event {event.get('id')} ({event_type}) processed for {reference}")
    return {"status": "ok", "transaction_id": transaction.id if transaction else None}
