# app/services/payment_expiration.py

import logging

from app.db.session import SessionLocal
from app.services import payments as payment_service

logger = logging.getLogger(__name__)


async def expire_pending_payments_task():
    """
    Scheduled job: moves PENDING payment links past their expiry to EXPIRED.
    Resolution expires them lazily as well; the sweep keeps listings accurate.
    """
    logger.info("--- Starting scheduled job: Expire Pending Payments ---")
    try:
        with SessionLocal() as db:
            expired = payment_service.expire_overdue_payments(db)
        logger.info(f"Pending payments expired: {expired}")
    except Exception:
        logger.error("An error occurred during pending payment expiration", exc_info=True)
    logger.info("--- Finished scheduled job: Expire Pending Payments ---")
