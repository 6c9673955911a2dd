# app/routers/rules.py

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.crud import rules as crud_rules
from app.dependencies import Principal, get_current_principal, get_db, require_tenant_admin
from app.models.customer import Tier
from app.models.transaction import TxCategory
from app.schemas.rules import (
    CashbackRule,
    CashbackRuleUpdate,
    Offer,
    OfferCreate,
    OfferStatusUpdate,
    RuleSetResponse,
    TierRule,
    TierRuleUpdate,
)
from app.services import rules as rule_service

router = APIRouter()


@router.get("/rules", response_model=RuleSetResponse)
def get_rules(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    """Every rule of the tenant, active or not."""
    return {
        "cashback_rules": crud_rules.get_cashback_rules(db, principal.tenant_id),
        "tier_rules": crud_rules.get_tier_rules(db, principal.tenant_id),
        "offers": crud_rules.get_offers(db, principal.tenant_id),
    }


@router.put("/rules/cashback/{category}", response_model=CashbackRule)
def set_cashback_rule(
    category: TxCategory,
    payload: CashbackRuleUpdate,
    principal: Principal = Depends(require_tenant_admin),
    db: Session = Depends(get_db),
):
    return rule_service.set_cashback_rule(db, principal.tenant_id, category, payload.base_rate_bps, payload.is_active)


@router.put("/rules/tiers/{tier}", response_model=TierRule)
def set_tier_rule(
    tier: Tier,
    payload: TierRuleUpdate,
    principal: Principal = Depends(require_tenant_admin),
    db: Session = Depends(get_db),
):
    return rule_service.set_tier_rule(
        db, principal.tenant_id, tier, payload.min_total_spend_cents, payload.bonus_rate_bps, payload.is_active
    )


@router.post("/rules/offers", response_model=Offer, status_code=status.HTTP_201_CREATED)
def create_offer(
    payload: OfferCreate,
    principal: Principal = Depends(require_tenant_admin),
    db: Session = Depends(get_db),
):
    return rule_service.create_offer(
        db, principal.tenant_id, payload.name, payload.rate_bps, payload.start_at, payload.end_at
    )


@router.patch("/rules/offers/{offer_id}", response_model=Offer)
def update_offer_status(
    offer_id: str,
    payload: OfferStatusUpdate,
    principal: Principal = Depends(require_tenant_admin),
    db: Session = Depends(get_db),
):
    return rule_service.set_offer_active(db, principal.tenant_id, offer_id, payload.is_active)
