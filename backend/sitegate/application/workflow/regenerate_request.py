from flask import current_app
from sitegate.extensions import db
from sitegate.models.customization_request import CustomizationRequest
from sitegate.domain.errors import AlreadyHandled
from sitegate.domain.lifecycle.customization_request import (
    ACTIVE_STATUSES,
    RequestStatus,
    RequestType,
)
from sitegate.application.jobs.queue import enqueue_regeneration
from sitegate.utils.audit import log_action
from sitegate.utils.transaction import transactional
from .customers import get_customer
from .intake import clean_description, open_request
from .lookup import resolve_request
from .transitions import ADMIN_FEEDBACK_MARKER, extend_request_values, transition_request


def reject_with_feedback(*, customer_id, feedback, request_id=None) -> CustomizationRequest:
    """
    Operator rejects the pending version and sends it back with feedback.

    Mutates the existing request in place: feedback is appended, the round
    advances, approved_at is cleared and a new regeneration is queued. The
    rejected WebsiteVersion stays in the history.
    """
    feedback = clean_description(feedback, field="feedback")
    customer = get_customer(customer_id)
    request = resolve_request(customer.id, request_id, fallback_statuses=ACTIVE_STATUSES)

    request_key = request.id
    from_status = request.status

    with transactional():
        moved = transition_request(
            request_key,
            from_statuses=(from_status,),
            to_status=RequestStatus.PROCESSING,
            values=extend_request_values(feedback, marker=ADMIN_FEEDBACK_MARKER),
            revision_round=request.revision_round,
        )
        if not moved:
            raise AlreadyHandled(f"Request {request_key} changed while it was being reviewed")

        job = enqueue_regeneration(request_id=request_key, customer_id=customer.id)

        log_action(
            action="request.reject",
            entity_type="customization_request",
            entity_id=request_key,
            payload={
                "from_status": from_status.value,
                "feedback": feedback,
                "job_id": job.id,
            },
        )

    current_app.logger.info(f"Request {request_key} sent back for regeneration with operator feedback")
    return db.session.get(CustomizationRequest, request_key)


def start_admin_regeneration(*, customer_id, instructions) -> CustomizationRequest:
    """Operator-initiated regeneration for a customer, outside the review queue."""
    instructions = clean_description(instructions, field="instructions")
    customer = get_customer(customer_id)

    request, _ = open_request(
        customer_id=customer.id,
        request_type=RequestType.ADMIN_REVISION,
        description=instructions,
        marker=ADMIN_FEEDBACK_MARKER,
    )
    return request
