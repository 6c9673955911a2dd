# app/services/rates.py
"""
Cashback rate resolution.

The resolver works on an explicit per-tenant `RuleSet` snapshot, so it has
no database access of its own and can be exercised in tests with plain
dataclasses. `load_rule_set` builds the snapshot from the rule tables.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Tuple

from sqlalchemy.orm import Session

from app.crud import rules as crud_rules
from app.models.customer import Tier
from app.models.transaction import TxCategory
from app.utils.dates import as_utc

BPS_DENOMINATOR = 10_000


@dataclass(frozen=True)
class CashbackRuleSnapshot:
    category: TxCategory
    base_rate_bps: int
    is_active: bool = True


@dataclass(frozen=True)
class TierRuleSnapshot:
    tier: Tier
    min_total_spend_cents: int
    bonus_rate_bps: int
    is_active: bool = True


@dataclass(frozen=True)
class OfferSnapshot:
    name: str
    rate_bps: int
    start_at: datetime
    end_at: datetime
    is_active: bool = True

    def is_live(self, at: datetime) -> bool:
        return self.is_active and as_utc(self.start_at) <= as_utc(at) < as_utc(self.end_at)


@dataclass(frozen=True)
class RuleSet:
    tenant_id: str
    cashback_rules: Tuple[CashbackRuleSnapshot, ...] = field(default_factory=tuple)
    tier_rules: Tuple[TierRuleSnapshot, ...] = field(default_factory=tuple)
    offers: Tuple[OfferSnapshot, ...] = field(default_factory=tuple)

    def category_base_rate(self, category: TxCategory) -> int:
        # An inactive or missing rule contributes zero
        for rule in self.cashback_rules:
            if rule.is_active and rule.category == category:
                return rule.base_rate_bps
        return 0

    def tier_bonus_rate(self, tier: Tier | None) -> int:
        if tier is None:
            return 0
        for rule in self.tier_rules:
            if rule.is_active and rule.tier == tier:
                return rule.bonus_rate_bps
        return 0

    def live_offers(self, at: datetime) -> Tuple[OfferSnapshot, ...]:
        return tuple(offer for offer in self.offers if offer.is_live(at))

    @property
    def active_tier_rules(self) -> Tuple[TierRuleSnapshot, ...]:
        return tuple(rule for rule in self.tier_rules if rule.is_active)


def resolve_rate(rules: RuleSet, category: TxCategory, customer_tier: Tier | None, at: datetime) -> int:
    """
    Effective cashback rate in basis points:
    category base rate + tier bonus + sum of offers live at `at`.
    Offers stack without an upper cap; the result never goes below zero.
    """
    category = TxCategory(category)
    rate_bps = (
        rules.category_base_rate(category)
        + rules.tier_bonus_rate(Tier(customer_tier) if customer_tier else None)
        + sum(offer.rate_bps for offer in rules.live_offers(at))
    )
    return max(0, rate_bps)


def calculate_cashback(amount_cents: int, rate_bps: int) -> int:
    """floor(amount * rate / 10000) for non-negative inputs."""
    if amount_cents <= 0 or rate_bps <= 0:
        return 0
    return (amount_cents * rate_bps) // BPS_DENOMINATOR


def load_rule_set(db: Session, tenant_id: str) -> RuleSet:
    """Snapshots the tenant's rule tables."""
    return RuleSet(
        tenant_id=tenant_id,
        cashback_rules=tuple(
            CashbackRuleSnapshot(category=r.category, base_rate_bps=r.base_rate_bps, is_active=r.is_active)
            for r in crud_rules.get_cashback_rules(db, tenant_id)
        ),
        tier_rules=tuple(
            TierRuleSnapshot(
                tier=r.tier,
                min_total_spend_cents=r.min_total_spend_cents,
                bonus_rate_bps=r.bonus_rate_bps,
                is_active=r.is_active,
            )
            for r in crud_rules.get_tier_rules(db, tenant_id)
        ),
        offers=tuple(
            OfferSnapshot(name=o.name, rate_bps=o.rate_bps, start_at=o.start_at, end_at=o.end_at, is_active=o.is_active)
            for o in crud_rules.get_offers(db, tenant_id, active_only=True)
        ),
    )
