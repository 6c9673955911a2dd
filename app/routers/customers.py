# app/routers/customers.py

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from app.core.exceptions import CustomerNotFound
from app.crud import customer as crud_customer
from app.crud import notification as crud_notification
from app.dependencies import Principal, get_current_principal, get_db
from app.schemas.customer import CustomerDashboard
from app.schemas.notification import PaginatedNotifications
from app.services import rates as rate_service
from app.services import tiers as tier_service

router = APIRouter()


def _require_customer(db: Session, tenant_id: str, customer_id: str):
    customer = crud_customer.get_customer(db, tenant_id, customer_id)
    if not customer:
        raise CustomerNotFound()
    return customer


@router.get("/customers/{customer_id}", response_model=CustomerDashboard)
def get_customer_dashboard(
    customer_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Profile, combined card balance and progress towards the next tier."""
    customer = _require_customer(db, principal.tenant_id, customer_id)
    rules = rate_service.load_rule_set(db, principal.tenant_id)
    progress = tier_service.tier_progress(customer.total_spend_cents, customer.tier, rules.tier_rules)
    return {
        "customer": customer,
        "balance_cents": sum(card.balance_cents for card in customer.cards),
        "tier_progress": progress,
    }


@router.get("/customers/{customer_id}/notifications", response_model=PaginatedNotifications)
def get_customer_notifications(
    customer_id: str,
    unread_only: bool = Query(False),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    _require_customer(db, principal.tenant_id, customer_id)
    items = crud_notification.get_notifications(db, customer_id, skip=(page - 1) * size, limit=size, unread_only=unread_only)
    total = crud_notification.count_notifications(db, customer_id, unread_only=unread_only)
    return {"count": total, "items": items}


@router.post("/customers/{customer_id}/notifications/read-all", status_code=204)
def read_all_notifications(
    customer_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    _require_customer(db, principal.tenant_id, customer_id)
    crud_notification.mark_all_notifications_as_read(db, customer_id)
    return Response(status_code=204)
