# tests/test_cards.py
import re

import pytest

from app.core.config import settings
from app.core.exceptions import (
    CardAlreadyActivated,
    CardNotActive,
    CardNotFound,
    CustomerNotFound,
    InvalidAmount,
    StoreNotFound,
)
from app.models.card import CardStatus
from app.models.customer import Tier
from app.models.rules import TierRule
from app.schemas.customer import CustomerCreate
from app.services import cards as card_service

from conftest import OTHER_TENANT_ID, TENANT_ID, make_card

UID_PATTERN = re.compile(r"^[A-Z0-9]{12}$")


def test_issue_cards(db_session, test_store):
    cards = card_service.issue_cards(db_session, TENANT_ID, 25, test_store.id)

    assert len(cards) == 25
    assert len({card.card_uid for card in cards}) == 25
    for card in cards:
        assert UID_PATTERN.match(card.card_uid)
        assert card.status == CardStatus.UNASSIGNED
        assert card.balance_cents == 0
        assert card.customer_id is None
        assert card.store_id == test_store.id


@pytest.mark.parametrize("count", [0, 1001, -3])
def test_issue_batch_size_limits(db_session, count):
    with pytest.raises(InvalidAmount):
        card_service.issue_cards(db_session, TENANT_ID, count)


def test_issue_retries_uid_collisions(db_session, mocker):
    make_card(db_session, uid="TAKEN0000000")
    mocker.patch(
        "app.services.cards.generate_card_uid",
        side_effect=["TAKEN0000000", "FRESH0000001", "FRESH0000001", "FRESH0000002"],
    )

    cards = card_service.issue_cards(db_session, TENANT_ID, 2)

    assert sorted(card.card_uid for card in cards) == ["FRESH0000001", "FRESH0000002"]


def test_activate_with_new_customer(db_session, test_store):
    card = make_card(db_session, status=CardStatus.UNASSIGNED, uid="NEWCARD00001")

    activated = card_service.activate_card(
        db_session, TENANT_ID, card.card_uid, test_store.id,
        new_customer=CustomerCreate(first_name="Grace", last_name="Hopper", email="grace@example.com"),
    )

    assert activated.status == CardStatus.ACTIVE
    assert activated.store_id == test_store.id
    assert activated.activated_at is not None
    assert activated.customer.first_name == "Grace"
    assert activated.customer.tier == Tier(settings.DEFAULT_TIER)
    assert activated.customer.total_spend_cents == 0


def test_activate_with_existing_customer(db_session, test_store, test_customer):
    card = make_card(db_session, status=CardStatus.UNASSIGNED, uid="NEWCARD00002")

    activated = card_service.activate_card(db_session, TENANT_ID, card.card_uid, test_store.id, customer_id=test_customer.id)

    assert activated.customer_id == test_customer.id


def test_activation_errors(db_session, test_store, active_card):
    with pytest.raises(CardAlreadyActivated):
        card_service.activate_card(db_session, TENANT_ID, active_card.card_uid, test_store.id, customer_id="x")

    blank = make_card(db_session, status=CardStatus.UNASSIGNED, uid="NEWCARD00003")
    with pytest.raises(CustomerNotFound):
        card_service.activate_card(db_session, TENANT_ID, blank.card_uid, test_store.id, customer_id="missing")
    with pytest.raises(StoreNotFound):
        card_service.activate_card(db_session, TENANT_ID, blank.card_uid, "missing-store", customer_id="missing")
    with pytest.raises(CardNotFound):
        card_service.activate_card(db_session, TENANT_ID, "NOPE00000000", test_store.id, customer_id="x")

    db_session.refresh(blank)
    assert blank.status == CardStatus.UNASSIGNED


def test_toggle_block(db_session, active_card):
    assert card_service.toggle_block(db_session, TENANT_ID, active_card.card_uid).status == CardStatus.BLOCKED
    assert card_service.toggle_block(db_session, TENANT_ID, active_card.card_uid).status == CardStatus.ACTIVE


def test_unassigned_card_cannot_be_blocked(db_session):
    card = make_card(db_session, status=CardStatus.UNASSIGNED)
    with pytest.raises(CardNotActive):
        card_service.toggle_block(db_session, TENANT_ID, card.card_uid)


def test_reassign_store(db_session, active_card, other_store):
    assert card_service.reassign_store(db_session, TENANT_ID, active_card.card_uid, other_store.id).store_id == other_store.id
    with pytest.raises(StoreNotFound):
        card_service.reassign_store(db_session, TENANT_ID, active_card.card_uid, "missing-store")


def test_cards_are_tenant_scoped(db_session, active_card):
    with pytest.raises(CardNotFound):
        card_service.get_card_by_uid(db_session, OTHER_TENANT_ID, active_card.card_uid)
    assert card_service.get_card_by_uid(db_session, TENANT_ID, active_card.card_uid).id == active_card.id


def test_new_customer_starts_at_lowest_active_tier(db_session, test_store):
    db_session.add(TierRule(tenant_id=TENANT_ID, tier=Tier.GOLD, min_total_spend_cents=50_000, bonus_rate_bps=100, is_active=True))
    db_session.commit()
    card = make_card(db_session, status=CardStatus.UNASSIGNED, uid="NEWCARD00003")

    activated = card_service.activate_card(
        db_session, TENANT_ID, card.card_uid, test_store.id,
        new_customer=CustomerCreate(first_name="Katherine", last_name="Johnson"),
    )

    assert activated.customer.tier == Tier.GOLD
