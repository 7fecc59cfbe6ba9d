import re
from decimal import Decimal, InvalidOperation
from flask import current_app
from sqlalchemy.exc import IntegrityError
from sitegate.extensions import db
from sitegate.models.customer import Customer
from sitegate.domain.errors import CustomerNotFound, ValidationFailed
from sitegate.utils.audit import log_action
from sitegate.utils.transaction import transactional

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

BILLING_FIELDS = ("business_name", "industry", "phone", "website_url", "stripe_subscription_id", "monthly_price")


def normalize_email(email) -> str:
    email = (email or "").strip().lower()
    if not EMAIL_RE.match(email):
        raise ValidationFailed("A valid email address is required")
    return email


def get_customer(customer_id) -> Customer:
    customer = db.session.get(Customer, str(customer_id)) if customer_id else None
    if customer is None:
        raise CustomerNotFound(f"Customer {customer_id} not found")
    return customer


def find_or_create_customer(email, *, business_name=None, industry=None, phone=None) -> Customer:
    """
    Look up a customer by email, creating a prospect record if none exists.

    The unique constraint on email decides concurrent creates: the loser
    rolls back and reads the winner's row.
    """
    email = normalize_email(email)

    customer = Customer.query.filter_by(email=email).first()
    if customer:
        return customer

    customer = Customer()
    customer.email = email
    customer.business_name = business_name or "Demo Customer"
    customer.industry = industry or "services"
    customer.phone = phone
    customer.monthly_price = Decimal("0")

    try:
        with transactional():
            db.session.add(customer)
            db.session.flush()

            log_action(
                action="customer.create",
                entity_type="customer",
                entity_id=customer.id,
                payload={"email": email},
            )
    except IntegrityError:
        current_app.logger.info(f"Customer {email} was created concurrently; reusing it")
        customer = Customer.query.filter_by(email=email).first()
        if customer is None:
            raise
        return customer

    current_app.logger.info(f"Created prospect customer {customer.id} for {email}")
    return customer


def apply_billing(customer: Customer, **fields) -> Customer:
    """Copy the billing subsystem's view of a customer onto the record."""
    changed = {}

    for field in BILLING_FIELDS:
        value = fields.get(field)
        if value is None:
            continue

        if field == "monthly_price":
            try:
                value = Decimal(str(value))
            except InvalidOperation as exc:
                raise ValidationFailed("monthly_price must be a number") from exc

        if getattr(customer, field) != value:
            setattr(customer, field, value)
            changed[field] = str(value)

    if not changed:
        return customer

    with transactional():
        log_action(
            action="customer.billing_update",
            entity_type="customer",
            entity_id=customer.id,
            payload={"fields": sorted(changed)},
        )

    return customer
