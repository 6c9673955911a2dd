# tests/test_tiers.py
from app.models.customer import Tier
from app.services.rates import RuleSet, TierRuleSnapshot, load_rule_set
from app.services.tiers import determine_tier, reevaluate_tier, tier_progress

from conftest import TENANT_ID

TIER_RULES = (
    TierRuleSnapshot(Tier.SILVER, 0, 0),
    TierRuleSnapshot(Tier.GOLD, 100_000, 100),
    TierRuleSnapshot(Tier.PLATINUM, 500_000, 200),
)


def test_highest_reached_threshold_wins():
    assert determine_tier(0, TIER_RULES) == Tier.SILVER
    assert determine_tier(99_999, TIER_RULES) == Tier.SILVER
    assert determine_tier(100_000, TIER_RULES) == Tier.GOLD
    assert determine_tier(10_000_000, TIER_RULES) == Tier.PLATINUM


def test_lowest_defined_tier_is_the_default():
    rules = (TierRuleSnapshot(Tier.GOLD, 50_000, 100), TierRuleSnapshot(Tier.PLATINUM, 90_000, 200))
    assert determine_tier(10, rules) == Tier.GOLD


def test_inactive_rules_are_ignored():
    rules = (TierRuleSnapshot(Tier.SILVER, 0, 0), TierRuleSnapshot(Tier.GOLD, 100, 100, is_active=False))
    assert determine_tier(1_000, rules) == Tier.SILVER
    assert determine_tier(1_000, ()) == Tier.SILVER


def test_tier_is_monotonic_in_spend():
    ranks = [determine_tier(spend, TIER_RULES).rank for spend in range(0, 700_000, 25_000)]
    assert ranks == sorted(ranks)


def test_reevaluation_is_idempotent_and_never_downgrades(db_session, test_customer):
    rules = RuleSet(tenant_id=TENANT_ID, tier_rules=TIER_RULES)

    test_customer.total_spend_cents = 150_000
    assert reevaluate_tier(db_session, test_customer, rules) == Tier.GOLD
    assert reevaluate_tier(db_session, test_customer, rules) == Tier.GOLD

    # Raising the GOLD threshold afterwards does not take the tier away
    stricter = RuleSet(tenant_id=TENANT_ID, tier_rules=(
        TierRuleSnapshot(Tier.SILVER, 0, 0),
        TierRuleSnapshot(Tier.GOLD, 200_000, 100),
    ))
    assert reevaluate_tier(db_session, test_customer, stricter) == Tier.GOLD
    db_session.commit()
    assert test_customer.tier == Tier.GOLD


def test_reevaluation_reads_tenant_rules(db_session, test_customer, standard_rules):
    test_customer.total_spend_cents = 600_000
    assert reevaluate_tier(db_session, test_customer, load_rule_set(db_session, TENANT_ID)) == Tier.PLATINUM


def test_progress_towards_next_tier():
    progress = tier_progress(25_000, Tier.SILVER, TIER_RULES)

    assert progress.next_tier == Tier.GOLD
    assert progress.next_tier_min_cents == 100_000
    assert progress.remaining_to_next_cents == 75_000
    assert progress.progress_percent == 25.0


def test_progress_at_top_tier():
    progress = tier_progress(800_000, Tier.PLATINUM, TIER_RULES)

    assert progress.next_tier is None
    assert progress.progress_percent == 100.0
    assert progress.remaining_to_next_cents == 0
    assert progress.current_tier_min_cents == 500_000
