from sitegate.extensions import db
from .base import BaseModel


class NotificationLog(BaseModel):
    __tablename__ = "notification_logs"

    kind = db.Column(db.String(50), nullable=False, index=True)
    recipient = db.Column(db.String(255), nullable=False)

    customer_id = db.Column(db.String(36), nullable=True, index=True)
    request_id = db.Column(db.String(36), nullable=True, index=True)

    status = db.Column(db.String(20), nullable=False)  # sent | failed
    error = db.Column(db.Text, nullable=True)
