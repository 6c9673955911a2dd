# app/crud/customer.py
from sqlalchemy import update
from sqlalchemy.orm import Session

from app.models.customer import Customer, Tier


def get_customer(db: Session, tenant_id: str, customer_id: str) -> Customer | None:
    return db.query(Customer).filter(Customer.id == customer_id, Customer.tenant_id == tenant_id).first()


def create_customer(
    db: Session,
    tenant_id: str,
    first_name: str,
    last_name: str,
    email: str | None = None,
    phone: str | None = None,
    tier: Tier = Tier.SILVER,
) -> Customer:
    """Adds a customer to the session. Requires an outer db.commit()."""
    customer = Customer(
        tenant_id=tenant_id,
        first_name=first_name,
        last_name=last_name,
        email=email,
        phone=phone,
        tier=tier,
        total_spend_cents=0,
    )
    db.add(customer)
    db.flush()
    return customer


def increment_total_spend(db: Session, customer_id: str, amount_cents: int) -> None:
    """Atomic `total_spend_cents = total_spend_cents + amount`; safe against concurrent earns on sibling cards."""
    db.execute(
        update(Customer)
        .where(Customer.id == customer_id)
        .values(total_spend_cents=Customer.total_spend_cents + amount_cents)
        .execution_options(synchronize_session=False)
    )
