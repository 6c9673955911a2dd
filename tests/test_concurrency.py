# tests/test_concurrency.py
"""
Two sessions interleaved against the same database: the second one reads
a row, the first one commits a change to it, then the second one writes.
"""
import pytest

from app.core.exceptions import ConcurrentMutationConflict, InsufficientBalance
from app.crud import payment as crud_payment
from app.crud import transaction as crud_transaction
from app.crud.card import lock_card
from app.models.payment import PaymentOutcome, PaymentPurpose, PaymentStatus
from app.models.transaction import TxType
from app.services import engine, ledger
from app.services import payments as payment_service

from conftest import TENANT_ID, TestingSessionLocal


@pytest.fixture
def second_session(db_session):
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()


def entries_of(db, card):
    return crud_transaction.get_card_transactions_chronological(db, card.id)


def test_stale_reader_cannot_double_spend(db_session, second_session, active_card, fund_card):
    fund_card(active_card, 500)
    stale_card = lock_card(second_session, active_card.id)
    assert stale_card.balance_cents == 500

    engine.redeem(db_session, TENANT_ID, active_card.id, 400)

    with pytest.raises(ConcurrentMutationConflict):
        ledger.apply_mutation(second_session, stale_card, -400)
    second_session.rollback()
    with pytest.raises(InsufficientBalance):
        engine.redeem(second_session, TENANT_ID, active_card.id, 400)

    db_session.refresh(active_card)
    assert active_card.balance_cents == 100
    assert [e.type for e in entries_of(db_session, active_card)] == [TxType.ADJUST, TxType.REDEEM]


def test_lost_race_is_retried_against_the_new_balance(db_session, second_session, active_card, fund_card):
    fund_card(active_card, 500)
    stale_card = lock_card(second_session, active_card.id)

    engine.redeem(db_session, TENANT_ID, active_card.id, 200)

    entry = ledger.run_atomic(second_session, lambda: ledger.post_entry(
        second_session, stale_card, ledger.TransactionDraft(
            tenant_id=TENANT_ID, card_id=active_card.id, customer_id=active_card.customer_id,
            type=TxType.REDEEM, amount_cents=200,
        )
    ))

    assert (entry.balance_before_cents, entry.balance_after_cents) == (300, 100)
    db_session.refresh(active_card)
    assert active_card.balance_cents == 100
    assert len(entries_of(db_session, active_card)) == 3
    assert ledger.verify_card_ledger(db_session, active_card).is_consistent


def test_concurrent_confirmations_credit_once(db_session, second_session, active_card):
    pending = payment_service.create_pending(
        db_session, TENANT_ID, 1000, card_id=active_card.id, purpose=PaymentPurpose.STORE_CREDIT
    )
    reference = pending.external_reference
    stale_pending = crud_payment.get_by_reference(second_session, reference)
    assert stale_pending.status == PaymentStatus.PENDING

    first = payment_service.resolve(db_session, reference, PaymentOutcome.SUCCEEDED)

    # The second delivery cannot claim the row it read as PENDING
    assert crud_payment.transition_status(
        second_session, stale_pending.id, (PaymentStatus.PENDING, PaymentStatus.FAILED), PaymentStatus.COMPLETED
    ) is False
    second_session.rollback()
    second = payment_service.resolve(second_session, reference, PaymentOutcome.SUCCEEDED)

    assert second.id == first.id
    db_session.refresh(active_card)
    assert active_card.balance_cents == 1000
    assert len(entries_of(db_session, active_card)) == 1
