from flask import g, has_request_context
from sitegate.extensions import db
from sitegate.models.audit_log import AuditLog
from typing import Optional

SYSTEM_ACTOR = "system"


def current_actor() -> str:
    if has_request_context():
        return g.get("actor_id") or SYSTEM_ACTOR
    return SYSTEM_ACTOR


def log_action(
    *,
    action: str,
    entity_type: str,
    entity_id: Optional[str],
    payload: dict | None = None,
    actor_id: str | None = None,
):
    """Stage an audit row in the caller's transaction."""
    log = AuditLog()

    log.actor_id = actor_id or current_actor()
    log.action = action
    log.entity_type = entity_type
    log.entity_id = entity_id or "*"
    log.payload = payload or {}

    db.session.add(log)
