# tests/test_webhooks.py
import json
import time
from datetime import timedelta

import pytest

from app.clients.payment_gateway import compute_signature
from app.core.config import settings
from app.crud import transaction as crud_transaction
from app.models.card import CardStatus
from app.models.payment import PaymentPurpose, PaymentStatus
from app.services import payments as payment_service
from app.utils.dates import utcnow

from conftest import TENANT_ID

WEBHOOK_URL = "/internal/webhooks/payments"
SECRET = "whsec_test"


@pytest.fixture(autouse=True)
def webhook_secret(monkeypatch):
    monkeypatch.setattr(settings, "PAYMENT_WEBHOOK_SECRET", SECRET)


def signed(event: dict, secret: str = SECRET, timestamp: int | None = None):
    body = json.dumps(event).encode("utf-8")
    t = str(timestamp if timestamp is not None else int(time.time()))
    headers = {
        "Content-Type": "application/json",
        "X-Payment-Signature": f"t={t},v1={compute_signature(secret, t, body)}",
    }
    return body, headers


def intent_event(event_type: str, reference: str, event_id: str = "evt_1", **intent) -> dict:
    return {
        "id": event_id,
        "type": event_type,
        "data": {"object": {"id": "pi_1", "metadata": {"external_reference": reference}, **intent}},
    }


@pytest.fixture
def store_credit(db_session, active_card):
    return payment_service.create_pending(
        db_session, TENANT_ID, 1000, card_id=active_card.id, purpose=PaymentPurpose.STORE_CREDIT
    )


@pytest.mark.asyncio
async def test_duplicate_success_event_credits_once(client, db_session, active_card, store_credit):
    body, headers = signed(intent_event("payment_intent.succeeded", store_credit.external_reference))

    first = await client.post(WEBHOOK_URL, content=body, headers=headers)
    second = await client.post(WEBHOOK_URL, content=body, headers=headers)

    assert first.status_code == second.status_code == 200
    assert first.json()["status"] == "ok"
    assert first.json()["transaction_id"] == second.json()["transaction_id"]
    db_session.refresh(active_card)
    assert active_card.balance_cents == 1000
    assert len(crud_transaction.get_card_transactions_chronological(db_session, active_card.id)) == 1


@pytest.mark.asyncio
async def test_failed_event_records_reason(client, db_session, store_credit):
    event = intent_event(
        "payment_intent.payment_failed", store_credit.external_reference,
        last_payment_error={"message": "Your card was declined."},
    )
    body, headers = signed(event)

    response = await client.post(WEBHOOK_URL, content=body, headers=headers)

    assert response.status_code == 200
    db_session.refresh(store_credit)
    assert store_credit.status == PaymentStatus.FAILED
    assert store_credit.failure_reason == "Your card was declined."


@pytest.mark.asyncio
async def test_bad_or_stale_signature_is_rejected(client, store_credit):
    event = intent_event("payment_intent.succeeded", store_credit.external_reference)

    body, headers = signed(event, secret="not-the-secret")
    assert (await client.post(WEBHOOK_URL, content=body, headers=headers)).status_code == 401

    body, headers = signed(event, timestamp=int(time.time()) - 3600)
    assert (await client.post(WEBHOOK_URL, content=body, headers=headers)).status_code == 401

    body, _ = signed(event)
    assert (await client.post(WEBHOOK_URL, content=body)).status_code == 401


@pytest.mark.asyncio
async def test_missing_secret_refuses_everything(client, monkeypatch, store_credit):
    body, headers = signed(intent_event("payment_intent.succeeded", store_credit.external_reference))
    monkeypatch.setattr(settings, "PAYMENT_WEBHOOK_SECRET", "")

    assert (await client.post(WEBHOOK_URL, content=body, headers=headers)).status_code == 401


@pytest.mark.asyncio
async def test_unknown_reference_and_event_type_are_acknowledged(client):
    body, headers = signed(intent_event("payment_intent.succeeded", "no-such-reference"))
    unknown = await client.post(WEBHOOK_URL, content=body, headers=headers)

    body, headers = signed({"id": "evt_2", "type": "charge.refund.updated", "data": {"object": {}}})
    other_type = await client.post(WEBHOOK_URL, content=body, headers=headers)

    assert unknown.status_code == 200
    assert unknown.json()["status"] == "ignored"
    assert other_type.json()["status"] == "ignored"


@pytest.mark.asyncio
async def test_rejected_credit_asks_for_redelivery(client, db_session, active_card, store_credit):
    active_card.status = CardStatus.BLOCKED
    db_session.commit()
    body, headers = signed(intent_event("payment_intent.succeeded", store_credit.external_reference))

    response = await client.post(WEBHOOK_URL, content=body, headers=headers)

    assert response.status_code == 409
    db_session.refresh(store_credit)
    assert store_credit.status == PaymentStatus.PENDING


@pytest.mark.asyncio
async def test_success_after_expiry_is_not_credited(client, db_session, active_card, store_credit):
    store_credit.expires_at = utcnow() - timedelta(minutes=1)
    db_session.commit()
    body, headers = signed(intent_event("payment_intent.succeeded", store_credit.external_reference))

    response = await client.post(WEBHOOK_URL, content=body, headers=headers)

    assert response.status_code == 200
    assert response.json()["status"] == "expired"
    db_session.refresh(active_card)
    assert active_card.balance_cents == 0
