# app/services/rules.py

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from app.core.exceptions import InvalidRule, OfferNotFound
from app.crud import rules as crud_rules
from app.models.customer import Tier
from app.models.rules import CashbackRule, Offer, TierRule
from app.models.transaction import TxCategory
from app.utils.dates import as_utc

logger = logging.getLogger(__name__)


def _require_non_negative(name: str, value: int) -> None:
    if value < 0:
        raise InvalidRule(f"{name} cannot be negative, got {value}.")


def _require_ordered_threshold(db: Session, tenant_id: str, tier: Tier, min_total_spend_cents: int) -> None:
    """Higher tiers may not start below lower ones, so rank order and threshold order agree."""
    for other in crud_rules.get_tier_rules(db, tenant_id):
        other_tier = Tier(other.tier)
        if other_tier == tier:
            continue
        if other_tier.rank < tier.rank and other.min_total_spend_cents > min_total_spend_cents:
            raise InvalidRule(
                f"{tier.value} cannot start below {other_tier.value} ({other.min_total_spend_cents} cents)."
            )
        if other_tier.rank > tier.rank and other.min_total_spend_cents < min_total_spend_cents:
            raise InvalidRule(
                f"{tier.value} cannot start above {other_tier.value} ({other.min_total_spend_cents} cents)."
            )


def set_cashback_rule(
    db: Session, tenant_id: str, category: TxCategory, base_rate_bps: int, is_active: bool = True
) -> CashbackRule:
    _require_non_negative("base_rate_bps", base_rate_bps)
    rule = crud_rules.upsert_cashback_rule(db, tenant_id, TxCategory(category), base_rate_bps, is_active)
    logger.info(f"Tenant {tenant_id}: cashback rule {rule.category.value} = {base_rate_bps} bps (active={is_active})")
    return rule


def set_tier_rule(
    db: Session,
    tenant_id: str,
    tier: Tier,
    min_total_spend_cents: int,
    bonus_rate_bps: int,
    is_active: bool = True,
) -> TierRule:
    _require_non_negative("min_total_spend_cents", min_total_spend_cents)
    _require_non_negative("bonus_rate_bps", bonus_rate_bps)
    tier = Tier(tier)
    _require_ordered_threshold(db, tenant_id, tier, min_total_spend_cents)
    rule = crud_rules.upsert_tier_rule(db, tenant_id, tier, min_total_spend_cents, bonus_rate_bps, is_active)
    logger.info(
        f"Tenant {tenant_id}: tier rule {rule.tier.value} from {min_total_spend_cents} cents, "
        f"+{bonus_rate_bps} bps (active={is_active})"
    )
    return rule


def create_offer(
    db: Session, tenant_id: str, name: str, rate_bps: int, start_at: datetime, end_at: datetime
) -> Offer:
    """Offers may carry a negative rate; the resolved rate is still floored at zero."""
    if as_utc(start_at) >= as_utc(end_at):
        raise InvalidRule("Offer start_at must be before end_at.")
    offer = crud_rules.create_offer(db, tenant_id, name, rate_bps, start_at, end_at)
    logger.info(f"Tenant {tenant_id}: offer '{name}' {rate_bps:+d} bps [{start_at.isoformat()}, {end_at.isoformat()})")
    return offer


def set_offer_active(db: Session, tenant_id: str, offer_id: str, is_active: bool) -> Offer:
    offer = crud_rules.get_offer(db, tenant_id, offer_id)
    if not offer:
        raise OfferNotFound()
    return crud_rules.set_offer_active(db, offer, is_active)
