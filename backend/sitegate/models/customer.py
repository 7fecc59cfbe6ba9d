from decimal import Decimal
from sitegate.extensions import db
from .base import BaseModel


class Customer(BaseModel):
    """
    Identity anchor owned by billing. The revision workflow only reads it,
    apart from the duplicate-submission window claim.
    """
    __tablename__ = "customers"

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    business_name = db.Column(db.String(255), nullable=True)
    industry = db.Column(db.String(100), nullable=True)
    phone = db.Column(db.String(50), nullable=True)
    website_url = db.Column(db.String(512), nullable=True)

    stripe_subscription_id = db.Column(db.String(255), nullable=True)
    monthly_price = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("0"))

    last_revision_requested_at = db.Column(db.DateTime, nullable=True)

    @property
    def is_paying(self) -> bool:
        return bool(self.stripe_subscription_id) or (self.monthly_price or 0) > 0

    @property
    def display_name(self) -> str:
        return self.business_name or self.email
