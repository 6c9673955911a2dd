# tests/conftest.py
from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.clients.payment_gateway import PaymentIntent, get_payment_client
from app.db.session import Base
from app.dependencies import get_db
from app.main import app
# Every model is imported so create_all builds all tables
from app.models.notification import Notification  # noqa: F401
from app.models.card import Card, CardStatus
from app.models.customer import Customer, Tier
from app.models.payment import PaymentOutcome, PendingPayment  # noqa: F401
from app.models.rules import CashbackRule, Offer, TierRule
from app.models.store import Store
from app.models.transaction import TxCategory
from app.services import engine as ledger_engine
from app.services.auth import ROLE_CASHIER, ROLE_TENANT_ADMIN, issue_staff_token
from app.utils.dates import utcnow

# In-memory SQLite shared by every session of a test
SQLALCHEMY_DATABASE_URL = "sqlite://"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TENANT_ID = "tenant-1"
OTHER_TENANT_ID = "tenant-2"


@pytest.fixture(scope="function")
def db_session() -> Session:
    """Clean database for every test."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def test_store(db_session) -> Store:
    store = Store(tenant_id=TENANT_ID, name="Main street", active=True)
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture
def other_store(db_session) -> Store:
    store = Store(tenant_id=TENANT_ID, name="Airport", active=True)
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture
def test_customer(db_session) -> Customer:
    customer = Customer(tenant_id=TENANT_ID, first_name="Ada", last_name="Lovelace", tier=Tier.SILVER, total_spend_cents=0)
    db_session.add(customer)
    db_session.commit()
    return customer


def make_card(db, customer=None, store=None, status=CardStatus.ACTIVE, uid="CARD00000001", tenant_id=TENANT_ID) -> Card:
    card = Card(
        tenant_id=tenant_id,
        card_uid=uid,
        customer_id=customer.id if customer else None,
        store_id=store.id if store else None,
        status=status,
        balance_cents=0,
        version=0,
    )
    db.add(card)
    db.commit()
    return card


@pytest.fixture
def active_card(db_session, test_customer, test_store) -> Card:
    return make_card(db_session, test_customer, test_store)


@pytest.fixture
def fund_card(db_session):
    """Puts balance on a card through a regular ledger adjustment."""
    def _fund(card: Card, amount_cents: int) -> Card:
        ledger_engine.adjust(db_session, card.tenant_id, card.id, amount_cents, "test funding")
        db_session.refresh(card)
        return card
    return _fund


@pytest.fixture
def standard_rules(db_session):
    """PURCHASE 200 bps; SILVER from 0, GOLD +100 bps from 1000.00, PLATINUM +200 bps from 5000.00."""
    db_session.add_all([
        CashbackRule(tenant_id=TENANT_ID, category=TxCategory.PURCHASE, base_rate_bps=200, is_active=True),
        CashbackRule(tenant_id=TENANT_ID, category=TxCategory.REPAIR, base_rate_bps=500, is_active=False),
        TierRule(tenant_id=TENANT_ID, tier=Tier.SILVER, min_total_spend_cents=0, bonus_rate_bps=0, is_active=True),
        TierRule(tenant_id=TENANT_ID, tier=Tier.GOLD, min_total_spend_cents=100_000, bonus_rate_bps=100, is_active=True),
        TierRule(tenant_id=TENANT_ID, tier=Tier.PLATINUM, min_total_spend_cents=500_000, bonus_rate_bps=200, is_active=True),
    ])
    db_session.commit()


@pytest.fixture
def live_offer(db_session) -> Offer:
    now = utcnow()
    offer = Offer(
        tenant_id=TENANT_ID, name="Happy hour", rate_bps=50,
        start_at=now - timedelta(hours=1), end_at=now + timedelta(hours=1), is_active=True,
    )
    db_session.add(offer)
    db_session.commit()
    return offer


class FakePaymentGateway:
    """Stands in for the payment provider client."""

    def __init__(self):
        self.created = []
        self.status = PaymentOutcome.PENDING

    async def create_intent(self, amount_cents, metadata):
        self.created.append((amount_cents, dict(metadata)))
        return PaymentIntent(intent_id=f"pi_{len(self.created)}", client_secret="secret_abc", status=PaymentOutcome.PENDING)

    async def get_intent_status(self, intent_id):
        return self.status


@pytest.fixture
def fake_gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture
async def client(db_session, fake_gateway):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_client] = lambda: fake_gateway
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def auth_headers(role: str = ROLE_TENANT_ADMIN, store_id: str | None = None, tenant_id: str = TENANT_ID) -> dict:
    token = issue_staff_token("staff-1", tenant_id, role, store_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers() -> dict:
    return auth_headers(ROLE_TENANT_ADMIN)


@pytest.fixture
def cashier_headers(test_store) -> dict:
    return auth_headers(ROLE_CASHIER, test_store.id)
