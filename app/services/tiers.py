# app/services/tiers.py
import logging
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.customer import Customer, Tier
from app.services.rates import RuleSet, TierRuleSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TierProgress:
    current_tier: Tier
    current_spend_cents: int
    current_tier_min_cents: int
    next_tier: Tier | None
    next_tier_min_cents: int | None
    progress_percent: float
    remaining_to_next_cents: int


def _active_sorted(tier_rules: Iterable[TierRuleSnapshot]) -> list[TierRuleSnapshot]:
    return sorted(
        (rule for rule in tier_rules if rule.is_active),
        key=lambda rule: (rule.min_total_spend_cents, Tier(rule.tier).rank),
    )


def determine_tier(total_spend_cents: int, tier_rules: Iterable[TierRuleSnapshot]) -> Tier:
    """
    Highest active tier whose threshold is reached. Falls back to the
    lowest defined active tier, or to DEFAULT_TIER when no rule is active.
    """
    rules = _active_sorted(tier_rules)
    if not rules:
        return Tier(settings.DEFAULT_TIER)

    # Walk from the highest threshold down
    for rule in reversed(rules):
        if total_spend_cents >= rule.min_total_spend_cents:
            return Tier(rule.tier)
    return Tier(rules[0].tier)


def reevaluate_tier(db: Session, customer: Customer, rules: RuleSet) -> Tier:
    """
    Recomputes the customer's tier from the current spend. Tiers never
    regress here: a lower computed tier keeps the current one.
    Touches only the customer row, never the ledger. Requires an outer db.commit().
    """
    computed = determine_tier(customer.total_spend_cents or 0, rules.tier_rules)
    current = Tier(customer.tier) if customer.tier else Tier(settings.DEFAULT_TIER)
    new_tier = computed if computed.rank > current.rank else current

    if new_tier != customer.tier:
        logger.info(
            f"Customer {customer.id} tier {current.value} -> {new_tier.value} "
            f"(spend: {customer.total_spend_cents} cents)"
        )
        customer.tier = new_tier
        db.add(customer)
    return new_tier


def tier_progress(total_spend_cents: int, current_tier: Tier, tier_rules: Iterable[TierRuleSnapshot]) -> TierProgress:
    """Progress of a customer towards the next tier above the current one."""
    rules = _active_sorted(tier_rules)
    current_tier = Tier(current_tier)

    current_rule = next((rule for rule in rules if rule.tier == current_tier), None)
    next_rule = next(
        (
            rule for rule in rules
            if rule.min_total_spend_cents > total_spend_cents and Tier(rule.tier).rank > current_tier.rank
        ),
        None,
    )

    if next_rule is None:
        return TierProgress(
            current_tier=current_tier,
            current_spend_cents=total_spend_cents,
            current_tier_min_cents=current_rule.min_total_spend_cents if current_rule else 0,
            next_tier=None,
            next_tier_min_cents=None,
            progress_percent=100.0,
            remaining_to_next_cents=0,
        )

    percent = min(100.0, total_spend_cents / next_rule.min_total_spend_cents * 100)
    return TierProgress(
        current_tier=current_tier,
        current_spend_cents=total_spend_cents,
        current_tier_min_cents=current_rule.min_total_spend_cents if current_rule else 0,
        next_tier=Tier(next_rule.tier),
        next_tier_min_cents=next_rule.min_total_spend_cents,
        progress_percent=round(percent, 2),
        remaining_to_next_cents=max(0, next_rule.min_total_spend_cents - total_spend_cents),
    )
