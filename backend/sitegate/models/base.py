from datetime import datetime, timezone
import uuid
from sitegate.extensions import db


def utcnow():
    """Naive UTC timestamp; every DateTime column in the schema is stored as UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def enum_values(enum_cls):
    return [member.value for member in enum_cls]


class BaseModel(db.Model):
    __abstract__ = True

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def __init__(self, **kwargs):
        """
        Dummy __init__ to satisfy static type checkers (Pylance, MyPy).
        SQLAlchemy ORM will populate fields dynamically.
        """
        super().__init__(**kwargs)
