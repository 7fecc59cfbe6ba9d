from sitegate.extensions import db
from sitegate.domain.lifecycle.customization_request import (
    ACTIVE_STATUS_SQL,
    ACTIVE_STATUSES,
    RequestStatus,
    RequestType,
)
from .base import BaseModel, enum_values


class CustomizationRequest(BaseModel):
    __tablename__ = "customization_requests"

    customer_id = db.Column(db.String(36), db.ForeignKey("customers.id"), nullable=False, index=True)

    request_type = db.Column(
        db.Enum(RequestType, native_enum=False, length=32, values_callable=enum_values),
        nullable=False,
    )
    # Accumulates customer follow-ups and operator feedback
    request_text = db.Column(db.Text, nullable=False)

    status = db.Column(
        db.Enum(RequestStatus, native_enum=False, length=32, values_callable=enum_values),
        nullable=False,
        default=RequestStatus.PROCESSING,
    )
    # Bumped whenever request_text grows; renders of an older round are stale
    revision_round = db.Column(db.Integer, nullable=False, default=1)

    version_id = db.Column(db.String(36), db.ForeignKey("website_versions.id"), nullable=True)

    completed_at = db.Column(db.DateTime, nullable=True)
    approved_at = db.Column(db.DateTime, nullable=True)

    # Failure marker: the request stays processing until retried
    failed_at = db.Column(db.DateTime, nullable=True)
    last_error = db.Column(db.Text, nullable=True)

    customer = db.relationship("Customer")
    version = db.relationship("WebsiteVersion", foreign_keys=[version_id])

    __table_args__ = (
        db.Index(
            "uq_customization_request_active",
            "customer_id",
            unique=True,
            sqlite_where=db.text(ACTIVE_STATUS_SQL),
            postgresql_where=db.text(ACTIVE_STATUS_SQL),
        ),
        db.Index("idx_customization_request_queue", "status", "request_type"),
    )

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def has_failed(self) -> bool:
        return self.status == RequestStatus.PROCESSING and self.failed_at is not None
