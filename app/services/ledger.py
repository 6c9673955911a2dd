# app/services/ledger.py
"""
Ledger store: the only code path that changes a card balance.

A balance change is a compare-and-set UPDATE on (balance, version) that is
flushed in the same database transaction as its ledger entry. `run_atomic`
owns that transaction: it commits both together or rolls both back, and
retries a bounded number of times when another writer won the race for
the card row.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, TypeVar

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from app.core.config import settings
from app.core.exceptions import ConcurrentMutationConflict, InsufficientBalance
from app.crud import transaction as crud_transaction
from app.models.card import Card
from app.models.transaction import Transaction, TxCategory, TxType

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class MutationResult:
    previous_balance: int
    new_balance: int
    version: int
    mutation_applied: bool


@dataclass
class TransactionDraft:
    tenant_id: str
    card_id: str
    type: TxType
    amount_cents: int
    category: TxCategory = TxCategory.OTHER
    cashback_cents: int = 0
    customer_id: str | None = None
    store_id: str | None = None
    cashier_id: str | None = None
    note: str | None = None


def balance_delta(type: TxType, amount_cents: int, cashback_cents: int = 0) -> int:
    """Signed balance effect of a ledger entry."""
    type = TxType(type)
    if type is TxType.EARN:
        return cashback_cents
    if type is TxType.REDEEM:
        return -amount_cents
    if type is TxType.ADJUST:
        return amount_cents
    raise ValueError(f"Unhandled transaction type: {type}")


def apply_mutation(db: Session, card: Card, delta: int, expected_prior_balance: int | None = None) -> MutationResult:
    """
    Moves the card balance by `delta`. The UPDATE only matches while the
    row still holds the balance and version this session read, so a
    concurrent writer turns into ConcurrentMutationConflict instead of a
    lost update. A negative result is rejected before any write.
    """
    prior_balance = card.balance_cents if expected_prior_balance is None else expected_prior_balance
    prior_version = card.version

    if prior_balance + delta < 0:
        raise InsufficientBalance(
            f"Insufficient balance: available {prior_balance} cents, requested {-delta} cents."
        )

    result = db.execute(
        update(Card)
        .where(
            Card.id == card.id,
            Card.balance_cents == prior_balance,
            Card.version == prior_version,
        )
        .values(balance_cents=Card.balance_cents + delta, version=Card.version + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ConcurrentMutationConflict()

    new_balance = prior_balance + delta
    set_committed_value(card, "balance_cents", new_balance)
    set_committed_value(card, "version", prior_version + 1)

    return MutationResult(
        previous_balance=prior_balance,
        new_balance=new_balance,
        version=prior_version + 1,
        mutation_applied=delta != 0,
    )


def append_entry(db: Session, draft: TransactionDraft, mutation: MutationResult) -> Transaction:
    """Writes the immutable ledger entry describing `mutation`."""
    entry = crud_transaction.create_transaction(
        db,
        tenant_id=draft.tenant_id,
        card_id=draft.card_id,
        customer_id=draft.customer_id,
        store_id=draft.store_id,
        cashier_id=draft.cashier_id,
        type=draft.type,
        category=draft.category,
        amount_cents=draft.amount_cents,
        cashback_cents=draft.cashback_cents,
        balance_before_cents=mutation.previous_balance,
        balance_after_cents=mutation.new_balance,
        card_version=mutation.version,
        note=draft.note,
    )
    db.flush()
    return entry


def post_entry(db: Session, card: Card, draft: TransactionDraft) -> Transaction:
    """Balance mutation plus its ledger entry, inside the caller's database transaction."""
    delta = balance_delta(draft.type, draft.amount_cents, draft.cashback_cents)
    mutation = apply_mutation(db, card, delta)
    return append_entry(db, draft, mutation)


# Postgres names the constraint; SQLite only lists its columns
ENTRY_SEQUENCE_MARKERS = (
    "uq_transactions_card_version",
    "transactions.card_id, transactions.card_version",
)


def is_entry_sequence_race(error: IntegrityError) -> bool:
    """True when the violation is a second entry for the same card version."""
    diag = getattr(error.orig, "diag", None)
    if getattr(diag, "constraint_name", None) == "uq_transactions_card_version":
        return True
    message = str(error.orig)
    return any(marker in message for marker in ENTRY_SEQUENCE_MARKERS)


def run_atomic(db: Session, operation: Callable[[], T], attempts: int | None = None) -> T:
    """
    Runs `operation` and commits. Any error rolls the whole unit back.
    ConcurrentMutationConflict and unique violations on the entry
    sequence (the same race seen from the other side) are retried; any
    other integrity error is a data error and propagates unchanged.
    """
    attempts = attempts or settings.LEDGER_MAX_RETRIES
    for attempt in range(1, attempts + 1):
        try:
            result = operation()
            db.commit()
            return result
        except (ConcurrentMutationConflict, IntegrityError) as e:
            db.rollback()
            if isinstance(e, IntegrityError) and not is_entry_sequence_race(e):
                logger.error(f"Ledger write violated a database constraint: {e.orig}")
                raise
            logger.warning(f"Ledger write lost a concurrent race (attempt {attempt}/{attempts}): {e.__class__.__name__}")
            if attempt == attempts:
                if isinstance(e, ConcurrentMutationConflict):
                    raise
                raise ConcurrentMutationConflict() from e
        except Exception:
            db.rollback()
            raise
    raise ConcurrentMutationConflict()


@dataclass(frozen=True)
class LedgerVerification:
    card_id: str
    stored_balance: int
    replayed_balance: int
    entries: int
    broken_links: List[str]

    @property
    def is_consistent(self) -> bool:
        return self.stored_balance == self.replayed_balance and not self.broken_links


def replay_card_balance(db: Session, card_id: str) -> int:
    """Rebuilds the balance from zero using only the ledger."""
    return sum(
        balance_delta(entry.type, entry.amount_cents, entry.cashback_cents)
        for entry in crud_transaction.get_card_transactions_chronological(db, card_id)
    )


def verify_card_ledger(db: Session, card: Card) -> LedgerVerification:
    """
    Checks that the ledger reproduces the stored balance and that every
    entry starts where the previous one ended.
    """
    entries = crud_transaction.get_card_transactions_chronological(db, card.id)
    running = 0
    broken = []
    for entry in entries:
        delta = balance_delta(entry.type, entry.amount_cents, entry.cashback_cents)
        if entry.balance_before_cents != running or entry.balance_after_cents != running + delta:
            broken.append(entry.id)
        running += delta

    verification = LedgerVerification(
        card_id=card.id,
        stored_balance=card.balance_cents,
        replayed_balance=running,
        entries=len(entries),
        broken_links=broken,
    )
    if not verification.is_consistent:
        logger.error(
            f"Ledger mismatch for card {card.id}: stored {card.balance_cents}, replayed {running}, "
            f"broken entries: {broken}"
        )
    return verification
