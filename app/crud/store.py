# app/crud/store.py
from sqlalchemy.orm import Session

from app.models.store import Store


def get_store(db: Session, tenant_id: str, store_id: str) -> Store | None:
    return db.query(Store).filter(Store.id == store_id, Store.tenant_id == tenant_id).first()
