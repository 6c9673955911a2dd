# app/crud/rules.py
from datetime import datetime
from typing import List

from sqlalchemy.orm import Session

from app.models.customer import Tier
from app.models.rules import CashbackRule, Offer, TierRule
from app.models.transaction import TxCategory


def get_cashback_rules(db: Session, tenant_id: str) -> List[CashbackRule]:
    return db.query(CashbackRule).filter(CashbackRule.tenant_id == tenant_id).all()


def get_tier_rules(db: Session, tenant_id: str) -> List[TierRule]:
    return db.query(TierRule).filter(
        TierRule.tenant_id == tenant_id
    ).order_by(TierRule.min_total_spend_cents.asc()).all()


def get_offers(db: Session, tenant_id: str, active_only: bool = False) -> List[Offer]:
    query = db.query(Offer).filter(Offer.tenant_id == tenant_id)
    if active_only:
        query = query.filter(Offer.is_active.is_(True))
    return query.order_by(Offer.start_at.asc()).all()


def get_offer(db: Session, tenant_id: str, offer_id: str) -> Offer | None:
    return db.query(Offer).filter(Offer.id == offer_id, Offer.tenant_id == tenant_id).first()


def upsert_cashback_rule(db: Session, tenant_id: str, category: TxCategory, base_rate_bps: int, is_active: bool) -> CashbackRule:
    rule = db.query(CashbackRule).filter_by(tenant_id=tenant_id, category=category).first()
    if rule is None:
        rule = CashbackRule(tenant_id=tenant_id, category=category)
        db.add(rule)
    rule.base_rate_bps = base_rate_bps
    rule.is_active = is_active
    db.commit()
    db.refresh(rule)
    return rule


def upsert_tier_rule(
    db: Session, tenant_id: str, tier: Tier, min_total_spend_cents: int, bonus_rate_bps: int, is_active: bool
) -> TierRule:
    rule = db.query(TierRule).filter_by(tenant_id=tenant_id, tier=tier).first()
    if rule is None:
        rule = TierRule(tenant_id=tenant_id, tier=tier)
        db.add(rule)
    rule.min_total_spend_cents = min_total_spend_cents
    rule.bonus_rate_bps = bonus_rate_bps
    rule.is_active = is_active
    db.commit()
    db.refresh(rule)
    return rule


def create_offer(
    db: Session, tenant_id: str, name: str, rate_bps: int, start_at: datetime, end_at: datetime, is_active: bool = True
) -> Offer:
    offer = Offer(
        tenant_id=tenant_id, name=name, rate_bps=rate_bps,
        start_at=start_at, end_at=end_at, is_active=is_active,
    )
    db.add(offer)
    db.commit()
    db.refresh(offer)
    return offer


def set_offer_active(db: Session, offer: Offer, is_active: bool) -> Offer:
    offer.is_active = is_active
    db.add(offer)
    db.commit()
    db.refresh(offer)
    return offer
