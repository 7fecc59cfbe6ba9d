from enum import Enum
from sitegate.extensions import db
from .base import BaseModel, utcnow, enum_values


class JobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class RegenerationJob(BaseModel):
    """Durable "regeneration requested" event, consumed by the worker."""
    __tablename__ = "regeneration_jobs"

    request_id = db.Column(
        db.String(36),
        db.ForeignKey("customization_requests.id"),
        nullable=False,
        index=True
    )
    customer_id = db.Column(db.String(36), nullable=False, index=True)

    status = db.Column(
        db.Enum(JobStatus, native_enum=False, length=16, values_callable=enum_values),
        nullable=False,
        default=JobStatus.QUEUED,
    )
    attempts = db.Column(db.Integer, nullable=False, default=0)

    available_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    heartbeat_at = db.Column(db.DateTime, nullable=True)
    finished_at = db.Column(db.DateTime, nullable=True)
    last_error = db.Column(db.Text, nullable=True)

    __table_args__ = (
        db.Index("idx_regeneration_job_claim", "status", "available_at"),
    )
