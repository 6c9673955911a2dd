# app/routers/transactions.py

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.crud import transaction as crud_transaction
from app.dependencies import Principal, get_current_principal, get_db, require_tenant_admin
from app.models.transaction import TxCategory, TxType
from app.schemas.transaction import AdjustRequest, EarnRequest, PaginatedTransactions, RedeemRequest, Transaction
from app.services import cards as card_service
from app.services import engine

router = APIRouter()


@router.post("/transactions/earn", response_model=Transaction, status_code=status.HTTP_201_CREATED)
def earn_cashback(
    payload: EarnRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Cash or in-store purchase on a card: credits cashback and grows lifetime spend."""
    card = card_service.get_card_by_uid(db, principal.tenant_id, payload.card_uid)
    return engine.earn(
        db, principal.tenant_id, card.id, payload.category, payload.purchase_amount_cents, payload.description,
        store_id=principal.bound_store_id, cashier_id=principal.user_id,
    )


@router.post("/transactions/redeem", response_model=Transaction, status_code=status.HTTP_201_CREATED)
def redeem_balance(
    payload: RedeemRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    card = card_service.get_card_by_uid(db, principal.tenant_id, payload.card_uid)
    return engine.redeem(
        db, principal.tenant_id, card.id, payload.amount_cents,
        note=payload.note, store_id=principal.bound_store_id, cashier_id=principal.user_id,
    )


@router.post("/transactions/adjust", response_model=Transaction, status_code=status.HTTP_201_CREATED)
def adjust_balance(
    payload: AdjustRequest,
    principal: Principal = Depends(require_tenant_admin),
    db: Session = Depends(get_db),
):
    """Administrative correction in either direction. Reversals are adjustments too."""
    card = card_service.get_card_by_uid(db, principal.tenant_id, payload.card_uid)
    return engine.adjust(
        db, principal.tenant_id, card.id, payload.amount_cents, payload.note, cashier_id=principal.user_id,
    )


@router.get("/transactions", response_model=PaginatedTransactions)
def list_transactions(
    type: TxType | None = Query(None),
    category: TxCategory | None = Query(None),
    customer_id: str | None = Query(None),
    card_uid: str | None = Query(None),
    store_id: str | None = Query(None),
    date_from: datetime | None = Query(None, alias="from"),
    date_to: datetime | None = Query(None, alias="to"),
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=200),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Ledger of the tenant, newest first. Cashiers only see their own store."""
    filters = dict(
        type=type,
        category=category,
        customer_id=customer_id,
        card_uid=card_uid,
        store_id=principal.bound_store_id or store_id,
        date_from=date_from,
        date_to=date_to,
    )
    items = crud_transaction.get_transactions(db, principal.tenant_id, skip=(page - 1) * size, limit=size, **filters)
    total = crud_transaction.count_transactions(db, principal.tenant_id, **filters)
    return {"count": total, "items": items}


@router.get("/transactions/{transaction_id}", response_model=Transaction)
def get_transaction(
    transaction_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    transaction = crud_transaction.get_transaction(db, principal.tenant_id, transaction_id)
    if not transaction:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found.")
    return transaction
