from flask import current_app
from sitegate.domain.lifecycle.customization_request import RequestType
from sitegate.services.notifications import NotificationKind
from .customers import find_or_create_customer, get_customer
from .intake import clean_description, open_request
from .notify import ack_context, notify
from .transitions import CUSTOMER_FOLLOW_UP_MARKER


def submit_revision(
    *,
    email,
    description,
    notifier,
    customer_id=None,
    business_name=None,
):
    """
    Customer self-service revision request.

    Responsibilities:
    - resolve the customer (find-or-create prospects by email)
    - reject resubmissions inside the cooldown window
    - open or coalesce the active request and queue its regeneration
    - acknowledge receipt (best-effort, after commit)

    Regeneration itself runs out-of-band in the queue consumer.
    """
    description = clean_description(description)

    if customer_id:
        customer = get_customer(customer_id)
    else:
        customer = find_or_create_customer(email, business_name=business_name)

    request, _ = open_request(
        customer_id=customer.id,
        request_type=RequestType.REVISION,
        description=description,
        marker=CUSTOMER_FOLLOW_UP_MARKER,
        cooldown_seconds=current_app.config["REVISION_COOLDOWN_SECONDS"],
    )

    notify(
        notifier,
        NotificationKind.CUSTOMER_ACK,
        customer.email,
        ack_context(customer, request, description),
        customer_id=customer.id,
        request_id=request.id,
    )

    return request
