from sqlalchemy import event
from sitegate.extensions import db
from sitegate.domain.invariants.exceptions import InvariantViolation
from .base import BaseModel

SNAPSHOT_FIELDS = ("customer_id", "version_number", "html_content", "change_description", "request_id")


class WebsiteVersion(BaseModel):
    __tablename__ = "website_versions"

    customer_id = db.Column(
        db.String(36),
        db.ForeignKey("customers.id"),
        nullable=False
    )

    version_number = db.Column(db.Integer, nullable=False)
    html_content = db.Column(db.Text, nullable=False)
    change_description = db.Column(db.Text, nullable=True)

    # Request whose render produced this snapshot (no FK: requests point back here)
    request_id = db.Column(db.String(36), nullable=True, index=True)

    # Only flipped when the owning request is approved
    is_current = db.Column(db.Boolean, nullable=False, default=False)

    __table_args__ = (
        db.UniqueConstraint("customer_id", "version_number", name="uq_website_version_number"),
        db.Index("idx_website_version_customer", "customer_id"),
        db.Index(
            "uq_website_version_current",
            "customer_id",
            unique=True,
            sqlite_where=db.text("is_current = 1"),
            postgresql_where=db.text("is_current"),
        ),
    )


@event.listens_for(WebsiteVersion, "before_update")
def prevent_snapshot_mutation(mapper, connection, target):
    state = db.inspect(target)
    changed = [name for name in SNAPSHOT_FIELDS if state.attrs[name].history.has_changes()]
    if changed:
        raise InvariantViolation(f"Website versions are immutable (tried to change {', '.join(changed)})")


@event.listens_for(WebsiteVersion, "before_delete")
def prevent_snapshot_delete(mapper, connection, target):
    raise InvariantViolation("Website versions are superseded, never deleted")
