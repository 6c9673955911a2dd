# app/routers/payments.py

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.clients.payment_gateway import PaymentGatewayClient, get_payment_client
from app.core.exceptions import PendingPaymentNotFound
from app.crud import payment as crud_payment
from app.dependencies import Principal, get_current_principal, get_db
from app.models.payment import PaymentOutcome, PaymentStatus
from app.schemas.payment import (
    CheckoutResponse,
    PaginatedPendingPayments,
    PaymentLink,
    PaymentResolution,
    PendingPayment,
    PendingPaymentCreate,
    SplitPurchaseRequest,
    SplitPurchaseResponse,
)
from app.services import cards as card_service
from app.services import payments as payment_service
from app.services import split as split_service

# Staff endpoints, mounted under /api
router = APIRouter()
# Payer-facing payment link endpoints; the reference itself is the secret
public_router = APIRouter()


def _tenant_payment(db: Session, principal: Principal, reference: str):
    pending = payment_service.get_pending_by_reference(db, reference)
    if pending.tenant_id != principal.tenant_id:
        raise PendingPaymentNotFound()
    return pending


@router.post("/payments", response_model=PendingPayment, status_code=status.HTTP_201_CREATED)
def create_payment_link(
    payload: PendingPaymentCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Opens a payment link (or terminal payment) that is credited once the provider confirms it."""
    card_id = None
    if payload.card_uid:
        card_id = card_service.get_card_by_uid(db, principal.tenant_id, payload.card_uid).id
    return payment_service.create_pending(
        db, principal.tenant_id, payload.amount_cents, payload.expires_at,
        card_id=card_id,
        purpose=payload.purpose,
        category=payload.category,
        description=payload.description,
        store_id=principal.bound_store_id,
        cashier_id=principal.user_id,
    )


@router.get("/payments", response_model=PaginatedPendingPayments)
def list_payments(
    status_filter: PaymentStatus | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    items = crud_payment.get_pending_payments(
        db, principal.tenant_id, status_filter, skip=(page - 1) * size, limit=size
    )
    total = crud_payment.count_pending_payments(db, principal.tenant_id, status_filter)
    return {"count": total, "items": items}


@router.get("/payments/{reference}", response_model=PendingPayment)
def get_payment(reference: str, principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    return _tenant_payment(db, principal, reference)


@router.post("/payments/{reference}/confirm", response_model=PaymentResolution)
def confirm_terminal_payment(
    reference: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Cashier confirmation for an in-person card terminal payment. Repeating it is harmless."""
    _tenant_payment(db, principal, reference)
    transaction = payment_service.resolve(db, reference, PaymentOutcome.SUCCEEDED)
    return {"payment": payment_service.get_pending_by_reference(db, reference), "transaction": transaction}


@router.post("/payments/split", response_model=SplitPurchaseResponse, status_code=status.HTTP_201_CREATED)
def start_split_purchase(
    payload: SplitPurchaseRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Pays part of a purchase from the card balance and opens a payment link for the rest."""
    result = split_service.start_split_purchase(
        db, principal.tenant_id, payload.card_uid,
        payload.total_amount_cents, payload.requested_balance_use_cents,
        payload.category, payload.description,
        store_id=principal.bound_store_id, cashier_id=principal.user_id,
    )
    return {
        "balance_portion_cents": result.plan.balance_portion_cents,
        "external_portion_cents": result.plan.external_portion_cents,
        "redemption": result.redemption,
        "pending_payment": result.pending,
    }


# --- Public payment link ---

@public_router.get("/pay/{reference}", response_model=PaymentLink)
def get_payment_link(reference: str, db: Session = Depends(get_db)):
    return payment_service.get_pending_by_reference(db, reference)


@public_router.post("/pay/{reference}/checkout", response_model=CheckoutResponse)
async def start_checkout(
    reference: str,
    db: Session = Depends(get_db),
    gateway: PaymentGatewayClient = Depends(get_payment_client),
):
    session = await payment_service.start_checkout(db, reference, gateway)
    return {
        "external_reference": reference,
        "intent_id": session.intent_id,
        "client_secret": session.client_secret,
        "amount_cents": session.pending.amount_cents,
    }


@public_router.post("/pay/{reference}/confirm", response_model=PaymentLink)
async def confirm_payment_link(
    reference: str,
    db: Session = Depends(get_db),
    gateway: PaymentGatewayClient = Depends(get_payment_client),
):
    """Polled by the payment page after the provider redirect; safe to call repeatedly."""
    pending, _ = await payment_service.confirm_from_gateway(db, reference, gateway)
    return pending
