from datetime import timedelta
from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sitegate.extensions import db
from sitegate.models.base import utcnow
from sitegate.models.customer import Customer
from sitegate.models.customization_request import CustomizationRequest
from sitegate.domain.errors import DuplicateSubmission, RequestConflict, ValidationFailed
from sitegate.domain.lifecycle.customization_request import (
    ACTIVE_STATUSES,
    RequestStatus,
    RequestType,
)
from sitegate.application.jobs.queue import enqueue_regeneration
from sitegate.utils.audit import log_action
from sitegate.utils.transaction import transactional
from .transitions import extend_request_values, find_active_request, transition_request

MAX_DESCRIPTION_LENGTH = 5000
MAX_INTAKE_ATTEMPTS = 3


class _ActiveRequestMoved(Exception):
    """The active request left the active statuses between read and update."""


def clean_description(text, *, field="description") -> str:
    text = (text or "").strip()
    if not text:
        raise ValidationFailed(f"{field} is required")
    if len(text) > MAX_DESCRIPTION_LENGTH:
        raise ValidationFailed(f"{field} must be at most {MAX_DESCRIPTION_LENGTH} characters")
    return text


def claim_submission_window(customer_id, cooldown_seconds):
    """
    Atomically stamp the customer's last submission time.

    Fails when the previous stamp is inside the window, so two near
    simultaneous submissions cannot both pass.
    """
    now = utcnow()
    cutoff = now - timedelta(seconds=cooldown_seconds)

    claimed = Customer.query.filter(
        Customer.id == customer_id,
        or_(
            Customer.last_revision_requested_at.is_(None),
            Customer.last_revision_requested_at <= cutoff,
        ),
    ).update({Customer.last_revision_requested_at: now}, synchronize_session=False)

    if not claimed:
        previous = db.session.query(Customer.last_revision_requested_at).filter(Customer.id == customer_id).scalar()
        retry_after = cooldown_seconds
        if previous is not None:
            retry_after = max(1, int((previous + timedelta(seconds=cooldown_seconds) - now).total_seconds()))
        raise DuplicateSubmission(
            "We already received a change request from you recently. Please try again later.",
            retry_after=retry_after,
        )


def _create(customer_id, request_type, description):
    request = CustomizationRequest()
    request.customer_id = customer_id
    request.request_type = request_type
    request.request_text = description
    request.status = RequestStatus.PROCESSING
    request.revision_round = 1

    db.session.add(request)
    db.session.flush()  # the active-request index fires here
    return request.id


def _coalesce(active, request_type, description, marker):
    values = extend_request_values(description, marker=marker)
    if request_type == RequestType.INITIAL_PURCHASE:
        values[CustomizationRequest.request_type] = RequestType.INITIAL_PURCHASE

    moved = transition_request(
        active.id,
        from_statuses=ACTIVE_STATUSES,
        to_status=RequestStatus.PROCESSING,
        values=values,
    )
    if not moved:
        raise _ActiveRequestMoved(active.id)
    return active.id


def open_request(*, customer_id, request_type, description, marker=None, cooldown_seconds=None):
    """
    Find the customer's active request and fold description into it, else
    create one; then queue a regeneration for it.

    Returns (request, coalesced).
    """
    for attempt in range(1, MAX_INTAKE_ATTEMPTS + 1):
        active = find_active_request(customer_id)

        try:
            with transactional():
                if cooldown_seconds:
                    claim_submission_window(customer_id, cooldown_seconds)

                if active is None:
                    request_id = _create(customer_id, request_type, description)
                    coalesced = False
                else:
                    request_id = _coalesce(active, request_type, description, marker)
                    coalesced = True

                job = enqueue_regeneration(request_id=request_id, customer_id=customer_id)

                log_action(
                    action="request.coalesce" if coalesced else "request.create",
                    entity_type="customization_request",
                    entity_id=request_id,
                    payload={
                        "request_type": RequestType(request_type).value,
                        "job_id": job.id,
                    },
                )
        except (IntegrityError, _ActiveRequestMoved) as exc:
            current_app.logger.warning(
                f"Intake race for customer {customer_id} (attempt {attempt}): {exc}"
            )
            continue

        current_app.logger.info(
            f"{'Coalesced into' if coalesced else 'Opened'} request {request_id} "
            f"for customer {customer_id} ({RequestType(request_type).value})"
        )
        return db.session.get(CustomizationRequest, request_id), coalesced

    raise RequestConflict("Your request collided with another update. Please try again.")
