# app/dependencies.py

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import SessionLocal
from app.services.auth import ROLE_CASHIER, ROLE_TENANT_ADMIN, ROLES

logger = logging.getLogger(__name__)

# --- Authentication schemes ---
strict_bearer_scheme = HTTPBearer(auto_error=True)


# --- Database session ---
def get_db_session_instance() -> Session:
    return SessionLocal()


def get_db() -> Iterator[Session]:
    """Main FastAPI dependency for a database session."""
    db = get_db_session_instance()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Iterator[Session]:
    """Database session outside FastAPI (scheduled jobs, scripts)."""
    db = get_db_session_instance()
    try:
        yield db
    finally:
        db.close()


# --- Caller identity ---
@dataclass(frozen=True)
class Principal:
    user_id: str
    tenant_id: str
    role: str
    store_id: str | None = None

    @property
    def is_tenant_admin(self) -> bool:
        return self.role == ROLE_TENANT_ADMIN

    @property
    def bound_store_id(self) -> str | None:
        """Store a cashier is pinned to; tenant admins act across stores."""
        return self.store_id if self.role == ROLE_CASHIER else None


def get_current_principal(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(strict_bearer_scheme),
) -> Principal:
    """
    Requires a valid bearer token carrying `sub`, `tenant_id` and `role`.
    Anything else is a 401.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(credentials.credentials, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT Error during token decoding: {e}")
        raise credentials_exception

    user_id = payload.get("sub")
    tenant_id = payload.get("tenant_id")
    role = payload.get("role")
    if not user_id or not tenant_id or role not in ROLES:
        logger.warning(f"Token payload is incomplete: sub={user_id}, tenant_id={tenant_id}, role={role}")
        raise credentials_exception

    principal = Principal(user_id=user_id, tenant_id=tenant_id, role=role, store_id=payload.get("store_id"))
    request.state.principal = principal
    logger.debug(f"Authenticated {role} {user_id} for tenant {tenant_id}")
    return principal


def require_tenant_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    """Protects rule administration, card issuance and balance adjustments."""
    if not principal.is_tenant_admin:
        logger.warning(f"Permission denied for {principal.role} {principal.user_id} on an admin endpoint.")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to access this resource.",
        )
    return principal
