# tests/test_rates.py
from datetime import datetime, timedelta, timezone

import pytest

from app.models.customer import Tier
from app.models.transaction import TxCategory
from app.services.rates import (
    CashbackRuleSnapshot,
    OfferSnapshot,
    RuleSet,
    TierRuleSnapshot,
    calculate_cashback,
    load_rule_set,
    resolve_rate,
)

from conftest import TENANT_ID

NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_rules(offers=()):
    return RuleSet(
        tenant_id=TENANT_ID,
        cashback_rules=(
            CashbackRuleSnapshot(TxCategory.PURCHASE, 200),
            CashbackRuleSnapshot(TxCategory.REPAIR, 400, is_active=False),
        ),
        tier_rules=(
            TierRuleSnapshot(Tier.SILVER, 0, 0),
            TierRuleSnapshot(Tier.GOLD, 100_000, 100),
            TierRuleSnapshot(Tier.PLATINUM, 500_000, 300, is_active=False),
        ),
        offers=tuple(offers),
    )


def offer(rate_bps, start, end, is_active=True):
    return OfferSnapshot(name=f"offer {rate_bps}", rate_bps=rate_bps, start_at=start, end_at=end, is_active=is_active)


def test_gold_purchase_with_live_offer():
    rules = make_rules([offer(50, NOW - timedelta(days=1), NOW + timedelta(days=1))])

    rate = resolve_rate(rules, TxCategory.PURCHASE, Tier.GOLD, NOW)

    assert rate == 350
    assert calculate_cashback(2000, rate) == 70


def test_inactive_rules_contribute_nothing():
    rules = make_rules()
    # REPAIR rule is inactive, PLATINUM tier rule is inactive
    assert resolve_rate(rules, TxCategory.REPAIR, Tier.PLATINUM, NOW) == 0
    assert resolve_rate(rules, TxCategory.OTHER, Tier.SILVER, NOW) == 0


def test_offer_window_is_half_open():
    start, end = NOW, NOW + timedelta(hours=2)
    rules = make_rules([offer(50, start, end)])

    assert resolve_rate(rules, TxCategory.PURCHASE, Tier.SILVER, start) == 250
    assert resolve_rate(rules, TxCategory.PURCHASE, Tier.SILVER, end - timedelta(microseconds=1)) == 250
    assert resolve_rate(rules, TxCategory.PURCHASE, Tier.SILVER, end) == 200
    assert resolve_rate(rules, TxCategory.PURCHASE, Tier.SILVER, start - timedelta(seconds=1)) == 200


def test_offers_stack_without_upper_cap():
    window = (NOW - timedelta(hours=1), NOW + timedelta(hours=1))
    rules = make_rules([offer(3000, *window), offer(4000, *window), offer(500, *window, is_active=False)])

    assert resolve_rate(rules, TxCategory.PURCHASE, Tier.GOLD, NOW) == 200 + 100 + 3000 + 4000


def test_rate_is_floored_at_zero():
    rules = make_rules([offer(-1000, NOW - timedelta(hours=1), NOW + timedelta(hours=1))])
    assert resolve_rate(rules, TxCategory.PURCHASE, Tier.GOLD, NOW) == 0


def test_resolution_is_stable_across_calls():
    rules = make_rules([offer(50, NOW - timedelta(hours=1), NOW + timedelta(hours=1))])
    results = {resolve_rate(rules, TxCategory.PURCHASE, Tier.GOLD, NOW) for _ in range(5)}
    resolve_rate(rules, TxCategory.REPAIR, Tier.SILVER, NOW + timedelta(days=3))
    assert results == {350}
    assert resolve_rate(rules, TxCategory.PURCHASE, Tier.GOLD, NOW) == 350


@pytest.mark.parametrize("amount, rate, expected", [
    (2000, 350, 70),
    (999, 100, 9),
    (1, 9999, 0),
    (0, 500, 0),
    (1000, 0, 0),
])
def test_calculate_cashback_floors(amount, rate, expected):
    assert calculate_cashback(amount, rate) == expected


def test_naive_offer_datetimes_are_treated_as_utc():
    naive_now = NOW.replace(tzinfo=None)
    rules = make_rules([offer(50, naive_now - timedelta(hours=1), naive_now + timedelta(hours=1))])
    assert resolve_rate(rules, TxCategory.PURCHASE, Tier.SILVER, NOW) == 250


def test_load_rule_set_snapshots_tenant_rules(db_session, standard_rules, live_offer):
    rules = load_rule_set(db_session, TENANT_ID)

    assert rules.category_base_rate(TxCategory.PURCHASE) == 200
    assert rules.category_base_rate(TxCategory.REPAIR) == 0
    assert rules.tier_bonus_rate(Tier.GOLD) == 100
    assert [o.name for o in rules.offers] == ["Happy hour"]
    assert load_rule_set(db_session, "another-tenant").cashback_rules == ()
