# tests/test_rules.py
import pytest

from app.core.exceptions import InvalidRule
from app.crud import rules as crud_rules
from app.models.customer import Tier
from app.services import rules as rule_service

from conftest import OTHER_TENANT_ID, TENANT_ID


def thresholds(db, tenant_id=TENANT_ID):
    return {Tier(rule.tier): rule.min_total_spend_cents for rule in crud_rules.get_tier_rules(db, tenant_id)}


def test_tier_threshold_update_in_order(db_session, standard_rules):
    rule = rule_service.set_tier_rule(db_session, TENANT_ID, Tier.GOLD, 200_000, 150)

    assert rule.min_total_spend_cents == 200_000
    assert rule.bonus_rate_bps == 150
    assert thresholds(db_session)[Tier.GOLD] == 200_000


@pytest.mark.parametrize("tier, min_total_spend_cents", [
    (Tier.GOLD, 600_000),      # above PLATINUM
    (Tier.PLATINUM, 50_000),   # below GOLD
])
def test_tier_thresholds_must_follow_tier_order(db_session, standard_rules, tier, min_total_spend_cents):
    before = thresholds(db_session)

    with pytest.raises(InvalidRule):
        rule_service.set_tier_rule(db_session, TENANT_ID, tier, min_total_spend_cents, 100)

    assert thresholds(db_session) == before


def test_tier_order_is_checked_per_tenant(db_session, standard_rules):
    rule_service.set_tier_rule(db_session, OTHER_TENANT_ID, Tier.GOLD, 900_000, 100)
    rule_service.set_tier_rule(db_session, OTHER_TENANT_ID, Tier.PLATINUM, 950_000, 200)

    assert thresholds(db_session, OTHER_TENANT_ID) == {Tier.GOLD: 900_000, Tier.PLATINUM: 950_000}


def test_negative_rule_values_are_rejected(db_session):
    with pytest.raises(InvalidRule):
        rule_service.set_tier_rule(db_session, TENANT_ID, Tier.GOLD, -1, 100)
    with pytest.raises(InvalidRule):
        rule_service.set_cashback_rule(db_session, TENANT_ID, "PURCHASE", -5)
