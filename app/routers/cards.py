# app/routers/cards.py

from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.exceptions import StoreNotFound
from app.crud import card as crud_card
from app.crud import transaction as crud_transaction
from app.dependencies import Principal, get_current_principal, get_db, require_tenant_admin
from app.models.card import CardStatus
from app.schemas.card import Card, CardActivateRequest, CardIssueRequest, CardStoreUpdate, PaginatedCards
from app.schemas.transaction import LedgerVerification, PaginatedTransactions
from app.services import cards as card_service
from app.services import ledger

router = APIRouter()


@router.post("/cards/issue", response_model=List[Card], status_code=status.HTTP_201_CREATED)
def issue_cards(
    payload: CardIssueRequest,
    principal: Principal = Depends(require_tenant_admin),
    db: Session = Depends(get_db),
):
    """Prints a batch of blank cards (UNASSIGNED) for the tenant."""
    return card_service.issue_cards(db, principal.tenant_id, payload.count, payload.store_id)


@router.get("/cards", response_model=PaginatedCards)
def list_cards(
    status_filter: CardStatus | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=200),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    store_id = principal.bound_store_id
    items = crud_card.get_cards(db, principal.tenant_id, status_filter, store_id, skip=(page - 1) * size, limit=size)
    total = crud_card.count_cards(db, principal.tenant_id, status_filter, store_id)
    return {"count": total, "items": items}


@router.get("/cards/{card_uid}", response_model=Card)
def get_card(card_uid: str, principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    """Card lookup by the UID scanned from its QR code."""
    return card_service.get_card_by_uid(db, principal.tenant_id, card_uid)


@router.post("/cards/{card_uid}/activate", response_model=Card)
def activate_card(
    card_uid: str,
    payload: CardActivateRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    store_id = principal.bound_store_id or payload.store_id
    if not store_id:
        raise StoreNotFound("A store is required to activate a card.")
    return card_service.activate_card(
        db, principal.tenant_id, card_uid, store_id,
        customer_id=payload.customer_id, new_customer=payload.customer,
    )


@router.post("/cards/{card_uid}/toggle-block", response_model=Card)
def toggle_block(card_uid: str, principal: Principal = Depends(require_tenant_admin), db: Session = Depends(get_db)):
    return card_service.toggle_block(db, principal.tenant_id, card_uid)


@router.put("/cards/{card_uid}/store", response_model=Card)
def reassign_store(
    card_uid: str,
    payload: CardStoreUpdate,
    principal: Principal = Depends(require_tenant_admin),
    db: Session = Depends(get_db),
):
    return card_service.reassign_store(db, principal.tenant_id, card_uid, payload.store_id)


@router.get("/cards/{card_uid}/transactions", response_model=PaginatedTransactions)
def card_transactions(
    card_uid: str,
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=200),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    card_service.get_card_by_uid(db, principal.tenant_id, card_uid)
    items = crud_transaction.get_transactions(
        db, principal.tenant_id, skip=(page - 1) * size, limit=size, card_uid=card_uid
    )
    total = crud_transaction.count_transactions(db, principal.tenant_id, card_uid=card_uid)
    return {"count": total, "items": items}


@router.get("/cards/{card_uid}/verify", response_model=LedgerVerification)
def verify_card(card_uid: str, principal: Principal = Depends(require_tenant_admin), db: Session = Depends(get_db)):
    """Replays the card ledger from zero and compares it with the stored balance."""
    card = card_service.get_card_by_uid(db, principal.tenant_id, card_uid)
    verification = ledger.verify_card_ledger(db, card)
    return LedgerVerification(
        card_id=verification.card_id,
        stored_balance=verification.stored_balance,
        replayed_balance=verification.replayed_balance,
        entries=verification.entries,
        broken_links=verification.broken_links,
        is_consistent=verification.is_consistent,
    )
