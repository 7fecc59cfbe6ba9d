from typing import Any, Dict, Optional, Union
from sitegate.domain.lifecycle.customization_request import RequestType
from sitegate.services.notifications import NotificationKind
from .customers import apply_billing, find_or_create_customer, get_customer
from .intake import open_request
from .notify import ack_context, notify

INITIAL_DESCRIPTION = "Initial website generation"
PURCHASE_MARKER = "Purchase details"


def describe_onboarding(onboarding: Optional[Union[str, Dict[str, Any]]]) -> str:
    if not onboarding:
        return INITIAL_DESCRIPTION

    if isinstance(onboarding, str):
        return f"{INITIAL_DESCRIPTION}\n{onboarding.strip()}"

    lines = [INITIAL_DESCRIPTION]
    for question, answer in onboarding.items():
        if answer in (None, ""):
            continue
        lines.append(f"{question}: {answer}")
    return "\n".join(lines)


def start_initial_purchase(
    *,
    notifier,
    email=None,
    customer_id=None,
    onboarding=None,
    **billing,
):
    """
    Paid signup hook: record billing details and queue the first website.

    A prospect who already has a demo request in flight gets that request
    upgraded to initial_purchase instead of a second one.
    """
    if customer_id:
        customer = get_customer(customer_id)
    else:
        customer = find_or_create_customer(
            email,
            business_name=billing.get("business_name"),
            industry=billing.get("industry"),
            phone=billing.get("phone"),
        )

    apply_billing(customer, **billing)

    description = describe_onboarding(onboarding)
    request, _ = open_request(
        customer_id=customer.id,
        request_type=RequestType.INITIAL_PURCHASE,
        description=description,
        marker=PURCHASE_MARKER,
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
