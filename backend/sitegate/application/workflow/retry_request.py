from flask import current_app
from sitegate.extensions import db
from sitegate.models.customization_request import CustomizationRequest
from sitegate.domain.errors import AlreadyHandled, IllegalTransition
from sitegate.domain.lifecycle.customization_request import RequestStatus
from sitegate.application.jobs.queue import enqueue_regeneration
from sitegate.utils.audit import log_action
from sitegate.utils.transaction import transactional
from .customers import get_customer
from .lookup import resolve_request
from .transitions import transition_request


def retry_request(*, customer_id, request_id=None) -> CustomizationRequest:
    """Manually re-trigger a request stuck in processing after a failed render."""
    customer = get_customer(customer_id)
    request = resolve_request(customer.id, request_id, fallback_statuses=(RequestStatus.PROCESSING,))

    if request.status != RequestStatus.PROCESSING:
        raise IllegalTransition(
            f"Only processing requests can be retried (request is {request.status.value})"
        )

    request_key = request.id
    previous_error = request.last_error

    with transactional():
        moved = transition_request(
            request_key,
            from_statuses=(RequestStatus.PROCESSING,),
            to_status=RequestStatus.PROCESSING,
            values={
                CustomizationRequest.failed_at: None,
                CustomizationRequest.last_error: None,
            },
            revision_round=request.revision_round,
        )
        if not moved:
            raise AlreadyHandled(f"Request {request_key} changed before it could be retried")

        job = enqueue_regeneration(request_id=request_key, customer_id=customer.id)

        log_action(
            action="request.retry",
            entity_type="customization_request",
            entity_id=request_key,
            payload={"previous_error": previous_error, "job_id": job.id},
        )

    current_app.logger.info(f"Request {request_key} queued for another regeneration attempt")
    return db.session.get(CustomizationRequest, request_key)
