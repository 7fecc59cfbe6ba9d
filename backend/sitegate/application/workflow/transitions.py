from sitegate.models.base import utcnow
from sitegate.models.customization_request import CustomizationRequest
from sitegate.domain.lifecycle.customization_request import (
    ACTIVE_STATUSES,
    RequestStatus,
    assert_transitions,
)

ADMIN_FEEDBACK_MARKER = "Admin feedback"
CUSTOMER_FOLLOW_UP_MARKER = "Customer follow-up"


def transition_request(request_id, *, from_statuses, to_status, values=None, revision_round=None) -> bool:
    """
    Compare-and-swap a request's status inside the caller's transaction.

    The UPDATE only matches while the row is still in one of from_statuses
    (and on revision_round, when given). Returns False when another actor
    got there first.
    """
    from_statuses = tuple(from_statuses)
    assert_transitions(from_statuses=from_statuses, to_status=to_status)

    query = CustomizationRequest.query.filter(
        CustomizationRequest.id == request_id,
        CustomizationRequest.status.in_(from_statuses),
    )
    if revision_round is not None:
        query = query.filter(CustomizationRequest.revision_round == revision_round)

    updates = {
        CustomizationRequest.status: to_status,
        CustomizationRequest.updated_at: utcnow(),
    }
    updates.update(values or {})

    return query.update(updates, synchronize_session=False) == 1


def relink_version(request_id, *, version_id, revision_round) -> bool:
    """Last write wins on version_id while the request waits for review."""
    now = utcnow()
    return CustomizationRequest.query.filter(
        CustomizationRequest.id == request_id,
        CustomizationRequest.status == RequestStatus.PENDING_APPROVAL,
        CustomizationRequest.revision_round == revision_round,
    ).update(
        {
            CustomizationRequest.version_id: version_id,
            CustomizationRequest.completed_at: now,
            CustomizationRequest.updated_at: now,
        },
        synchronize_session=False,
    ) == 1


def extend_request_values(addition, *, marker=None):
    """Column updates that append text to request_text and open a new round."""
    if marker:
        addition = f"{addition} ({marker})"

    return {
        CustomizationRequest.request_text: CustomizationRequest.request_text + f"\n\n{addition}",
        CustomizationRequest.revision_round: CustomizationRequest.revision_round + 1,
        CustomizationRequest.approved_at: None,
        CustomizationRequest.failed_at: None,
        CustomizationRequest.last_error: None,
    }


def find_active_request(customer_id):
    return (
        CustomizationRequest.query
        .filter(
            CustomizationRequest.customer_id == customer_id,
            CustomizationRequest.status.in_(ACTIVE_STATUSES),
        )
        .order_by(CustomizationRequest.created_at.desc())
        .first()
    )
