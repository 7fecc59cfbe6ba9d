from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from sitegate.extensions import db
from sitegate.models.notification_log import NotificationLog
from sitegate.services.notifications import NotificationKind
from sitegate.utils.links import approve_link, review_link, revision_form_link, site_link
from sitegate.utils.transaction import transactional


def notify(notifier, kind, recipient, context, *, customer_id=None, request_id=None) -> bool:
    """
    Best-effort send, recorded in the notification log.

    Callers invoke this after their transition has committed; a failure
    here is logged and never propagates.
    """
    kind = NotificationKind(kind)

    entry = NotificationLog()
    entry.kind = kind.value
    entry.recipient = recipient
    entry.customer_id = customer_id
    entry.request_id = request_id

    try:
        notifier.send(kind, recipient, context)
        entry.status = "sent"
    except Exception as e:
        entry.status = "failed"
        entry.error = str(e)[:2000]
        current_app.logger.error(f"Failed to send {kind.value} notification to {recipient}: {e}")

    try:
        with transactional():
            db.session.add(entry)
    except SQLAlchemyError as e:
        current_app.logger.error(f"Could not record {kind.value} notification for {recipient}: {e}")

    return entry.status == "sent"


def operator_inbox():
    return current_app.config["NOTIFICATION_EMAIL"]


def site_label(customer):
    return "website" if customer.is_paying else "demo"


def ack_context(customer, request, description):
    return {
        "business_name": customer.display_name,
        "description": description,
        "site_label": site_label(customer),
        "request_id": request.id,
    }


def review_context(customer, request, version_number):
    return {
        "customer_id": customer.id,
        "customer_email": customer.email,
        "business_name": customer.display_name,
        "customer_type": "Paid Customer" if customer.is_paying else "Pre-Purchase Demo",
        "request_id": request.id,
        "request_type": request.request_type.value,
        "description": request.request_text,
        "version_number": version_number,
        "review_url": review_link(customer.id, request.id),
        "approve_url": approve_link(customer.id, request.id),
    }


def delivery_context(customer, request):
    return {
        "business_name": customer.display_name,
        "description": request.request_text,
        "site_label": site_label(customer),
        "site_url": site_link(customer),
        "revision_url": revision_form_link(customer),
        "request_id": request.id,
    }


def failure_context(customer, request, error):
    return {
        "customer_id": customer.id,
        "customer_email": customer.email,
        "business_name": customer.display_name,
        "request_id": request.id,
        "description": request.request_text,
        "error": error,
    }
