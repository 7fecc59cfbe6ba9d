from enum import Enum
from typing import Iterable, Set

from ..errors import IllegalTransition


class RequestStatus(str, Enum):
    PROCESSING = "processing"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"


class RequestType(str, Enum):
    INITIAL_PURCHASE = "initial_purchase"
    REVISION = "revision"
    ADMIN_REVISION = "admin_revision"


# At most one request per customer may sit in these statuses
ACTIVE_STATUSES = (RequestStatus.PROCESSING, RequestStatus.PENDING_APPROVAL)
ACTIVE_STATUS_SQL = "status IN ('processing', 'pending_approval')"

# Explicit allowed state transitions
ALLOWED_REQUEST_TRANSITIONS: dict[RequestStatus, Set[RequestStatus]] = {
    # processing -> processing: failure marker, coalesced input, manual retry
    RequestStatus.PROCESSING: {RequestStatus.PROCESSING, RequestStatus.PENDING_APPROVAL},
    RequestStatus.PENDING_APPROVAL: {RequestStatus.APPROVED, RequestStatus.PROCESSING},
    RequestStatus.APPROVED: set(),
}


def assert_request_transition(*, from_status: RequestStatus, to_status: RequestStatus) -> None:
    """
    Guards customization request lifecycle transitions.
    Single source of truth for status changes.
    """
    allowed = ALLOWED_REQUEST_TRANSITIONS.get(RequestStatus(from_status), set())

    if RequestStatus(to_status) not in allowed:
        raise IllegalTransition(
            f"Illegal request transition: {RequestStatus(from_status).value} -> {RequestStatus(to_status).value}"
        )


def assert_transitions(*, from_statuses: Iterable[RequestStatus], to_status: RequestStatus) -> None:
    for from_status in from_statuses:
        assert_request_transition(from_status=from_status, to_status=to_status)
