# app/services/auth.py

import logging
from datetime import timedelta

from jose import jwt

from app.core.config import settings
from app.utils.dates import utcnow

logger = logging.getLogger(__name__)

ROLE_TENANT_ADMIN = "tenant_admin"
ROLE_CASHIER = "cashier"
ROLES = (ROLE_TENANT_ADMIN, ROLE_CASHIER)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Encodes a JWT with an expiry claim."""
    to_encode = data.copy()
    expire = utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def issue_staff_token(
    user_id: str,
    tenant_id: str,
    role: str,
    store_id: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Token for a tenant admin or a cashier; cashiers are pinned to their store."""
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")
    claims = {"sub": user_id, "tenant_id": tenant_id, "role": role}
    if store_id:
        claims["store_id"] = store_id
    logger.info(f"Issuing {role} token for user {user_id} (tenant {tenant_id}, store {store_id})")
    return create_access_token(claims, expires_delta)
