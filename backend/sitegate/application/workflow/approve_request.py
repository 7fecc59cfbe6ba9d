from dataclasses import dataclass
from typing import Optional

from flask import current_app

from sitegate.extensions import db
from sitegate.models.base import utcnow
from sitegate.models.customization_request import CustomizationRequest
from sitegate.models.website_version import WebsiteVersion
from sitegate.domain.errors import AlreadyHandled
from sitegate.domain.invariants.exceptions import InvariantViolation
from sitegate.domain.lifecycle.customization_request import (
    RequestStatus,
    RequestType,
    assert_request_transition,
)
from sitegate.services.notifications import NotificationKind
from sitegate.utils.audit import log_action
from sitegate.utils.publishing import publish_site
from sitegate.utils.transaction import transactional
from sitegate.utils.versioning import promote_version
from .customers import get_customer
from .lookup import resolve_request
from .notify import delivery_context, notify
from .transitions import transition_request


@dataclass
class ApprovalResult:
    request: CustomizationRequest
    version: WebsiteVersion
    notification: str
    notified: bool
    published_path: Optional[str] = None


def approve_request(*, customer_id, notifier, request_id=None) -> ApprovalResult:
    """
    Operator approves the pending version.

    The approval and the promotion of the version to current commit
    together; publishing the file and emailing the customer happen after
    commit. Only one of two concurrent approvals wins, so the customer is
    emailed once.
    """
    customer = get_customer(customer_id)
    request = resolve_request(customer.id, request_id)

    if request.status == RequestStatus.APPROVED:
        raise AlreadyHandled(f"Request {request.id} was already approved")

    assert_request_transition(from_status=request.status, to_status=RequestStatus.APPROVED)

    if not request.version_id:
        raise InvariantViolation(f"Request {request.id} is pending approval without a version")

    request_key = request.id
    version_id = request.version_id

    with transactional():
        approved = transition_request(
            request_key,
            from_statuses=(RequestStatus.PENDING_APPROVAL,),
            to_status=RequestStatus.APPROVED,
            values={CustomizationRequest.approved_at: utcnow()},
            revision_round=request.revision_round,
        )
        if not approved:
            raise AlreadyHandled(f"Request {request_key} changed before it could be approved")

        # Re-read inside the transaction: a duplicate completion may have relinked it
        version_id = (
            db.session.query(CustomizationRequest.version_id)
            .filter(CustomizationRequest.id == request_key)
            .scalar()
        )
        version = promote_version(customer.id, version_id)

        log_action(
            action="request.approve",
            entity_type="customization_request",
            entity_id=request_key,
            payload={
                "version_id": version.id,
                "version_number": version.version_number,
            },
        )

    request = db.session.get(CustomizationRequest, request_key)
    version = db.session.get(WebsiteVersion, version_id)

    published_path = publish_site(customer.id, version.html_content)

    if customer.is_paying and request.request_type == RequestType.INITIAL_PURCHASE:
        kind = NotificationKind.PAID_WELCOME
    else:
        kind = NotificationKind.REVISION_DELIVERED

    notified = notify(
        notifier,
        kind,
        customer.email,
        delivery_context(customer, request),
        customer_id=customer.id,
        request_id=request_key,
    )

    current_app.logger.info(
        f"Approved request {request_key}; version {version.version_number} is live for customer {customer.id}"
    )

    return ApprovalResult(
        request=request,
        version=version,
        notification=kind.value,
        notified=notified,
        published_path=published_path,
    )
