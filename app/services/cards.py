# app/services/cards.py

import logging
import secrets
import string
from typing import List

from sqlalchemy.orm import Session

from app.core.exceptions import (
    CardAlreadyActivated,
    CardNotActive,
    CardNotFound,
    CustomerNotFound,
    InvalidAmount,
    StoreNotFound,
)
from app.crud import card as crud_card
from app.crud import customer as crud_customer
from app.crud import store as crud_store
from app.models.card import Card, CardStatus
from app.schemas.customer import CustomerCreate
from app.services import rates as rate_service
from app.services import tiers as tier_service
from app.utils.dates import utcnow

logger = logging.getLogger(__name__)

CARD_UID_LENGTH = 12
CARD_UID_ALPHABET = string.ascii_uppercase + string.digits
MAX_BATCH_SIZE = 1000


def generate_card_uid() -> str:
    return "".join(secrets.choice(CARD_UID_ALPHABET) for _ in range(CARD_UID_LENGTH))


def _require_card(db: Session, tenant_id: str, card_uid: str) -> Card:
    card = crud_card.get_card_by_uid(db, tenant_id, card_uid)
    if not card:
        raise CardNotFound(f"Card {card_uid} not found.")
    return card


def _require_store(db: Session, tenant_id: str, store_id: str) -> None:
    if not crud_store.get_store(db, tenant_id, store_id):
        raise StoreNotFound()


def get_card_by_uid(db: Session, tenant_id: str, card_uid: str) -> Card:
    return _require_card(db, tenant_id, card_uid)


def issue_cards(db: Session, tenant_id: str, count: int, store_id: str | None = None) -> List[Card]:
    """Creates a batch of UNASSIGNED cards with fresh UIDs."""
    if isinstance(count, bool) or not isinstance(count, int) or not 1 <= count <= MAX_BATCH_SIZE:
        raise InvalidAmount(f"Card batch size must be between 1 and {MAX_BATCH_SIZE}.")
    if store_id:
        _require_store(db, tenant_id, store_id)

    uids: set[str] = set()
    while len(uids) < count:
        uid = generate_card_uid()
        if uid not in uids and not crud_card.card_uid_exists(db, uid):
            uids.add(uid)

    cards = crud_card.create_cards(db, tenant_id, sorted(uids), store_id)
    db.commit()
    for card in cards:
        db.refresh(card)
    logger.info(f"Issued {count} cards for tenant {tenant_id} (store {store_id})")
    return cards


def activate_card(
    db: Session,
    tenant_id: str,
    card_uid: str,
    store_id: str,
    customer_id: str | None = None,
    new_customer: CustomerCreate | None = None,
) -> Card:
    """
    Links an UNASSIGNED card to an existing or a new customer and binds it
    to the activating store.
    """
    card = _require_card(db, tenant_id, card_uid)
    if card.status != CardStatus.UNASSIGNED:
        raise CardAlreadyActivated(f"Card {card_uid} is already {card.status.value}.")
    _require_store(db, tenant_id, store_id)

    if customer_id:
        customer = crud_customer.get_customer(db, tenant_id, customer_id)
        if not customer:
            raise CustomerNotFound()
    elif new_customer:
        customer = crud_customer.create_customer(
            db,
            tenant_id=tenant_id,
            first_name=new_customer.first_name,
            last_name=new_customer.last_name,
            email=new_customer.email,
            phone=new_customer.phone,
            tier=tier_service.determine_tier(0, rate_service.load_rule_set(db, tenant_id).tier_rules),
        )
    else:
        raise CustomerNotFound("A customer id or new customer details are required.")

    card.customer_id = customer.id
    card.store_id = store_id
    card.status = CardStatus.ACTIVE
    card.activated_at = utcnow()
    db.add(card)
    db.commit()
    db.refresh(card)
    logger.info(f"Card {card_uid} activated for customer {customer.id} at store {store_id}")
    return card


def toggle_block(db: Session, tenant_id: str, card_uid: str) -> Card:
    card = _require_card(db, tenant_id, card_uid)
    if card.status == CardStatus.UNASSIGNED:
        raise CardNotActive(f"Card {card_uid} has not been activated yet.")

    card.status = CardStatus.ACTIVE if card.status == CardStatus.BLOCKED else CardStatus.BLOCKED
    db.add(card)
    db.commit()
    db.refresh(card)
    logger.info(f"Card {card_uid} is now {card.status.value}")
    return card


def reassign_store(db: Session, tenant_id: str, card_uid: str, store_id: str) -> Card:
    card = _require_card(db, tenant_id, card_uid)
    _require_store(db, tenant_id, store_id)
    card.store_id = store_id
    db.add(card)
    db.commit()
    db.refresh(card)
    logger.info(f"Card {card_uid} moved to store {store_id}")
    return card
