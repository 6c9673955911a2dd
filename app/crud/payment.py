# app/crud/payment.py
from datetime import datetime
from typing import Iterable, List

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.models.payment import PaymentStatus, PendingPayment


def create_pending_payment(db: Session, **fields) -> PendingPayment:
    """Adds a pending payment to the session. Requires an outer db.commit()."""
    pending = PendingPayment(**fields)
    db.add(pending)
    return pending


def get_by_reference(db: Session, external_reference: str, for_update: bool = False) -> PendingPayment | None:
    query = db.query(PendingPayment).filter(PendingPayment.external_reference == external_reference)
    if for_update:
        query = query.with_for_update().populate_existing()
    return query.first()


def get_by_intent_id(db: Session, intent_id: str) -> PendingPayment | None:
    return db.query(PendingPayment).filter(PendingPayment.intent_id == intent_id).first()


def transition_status(
    db: Session,
    pending_id: str,
    from_statuses: Iterable[PaymentStatus],
    to_status: PaymentStatus,
    **values,
) -> bool:
    """
    Compare-and-set on the status column. Returns False when another
    writer already moved the row out of `from_statuses`.
    """
    result = db.execute(
        update(PendingPayment)
        .where(PendingPayment.id == pending_id, PendingPayment.status.in_(list(from_statuses)))
        .values(status=to_status, **values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def expire_overdue(db: Session, now: datetime) -> int:
    """Marks every PENDING row past its expiry as EXPIRED. Requires an outer db.commit()."""
    result = db.execute(
        update(PendingPayment)
        .where(PendingPayment.status == PaymentStatus.PENDING, PendingPayment.expires_at <= now)
        .values(status=PaymentStatus.EXPIRED, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def get_pending_payments(
    db: Session, tenant_id: str, status: PaymentStatus | None = None, skip: int = 0, limit: int = 20
) -> List[PendingPayment]:
    query = db.query(PendingPayment).filter(PendingPayment.tenant_id == tenant_id)
    if status:
        query = query.filter(PendingPayment.status == status)
    return query.order_by(PendingPayment.created_at.desc()).offset(skip).limit(limit).all()


def count_pending_payments(db: Session, tenant_id: str, status: PaymentStatus | None = None) -> int:
    query = db.query(PendingPayment).filter(PendingPayment.tenant_id == tenant_id)
    if status:
        query = query.filter(PendingPayment.status == status)
    return query.count()
