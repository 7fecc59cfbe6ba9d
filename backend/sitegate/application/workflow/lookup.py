from sitegate.extensions import db
from sitegate.models.customization_request import CustomizationRequest
from sitegate.models.website_version import WebsiteVersion
from sitegate.domain.errors import RequestNotFound, VersionNotFound
from sitegate.domain.lifecycle.customization_request import RequestStatus


def resolve_request(customer_id, request_id=None, *, fallback_statuses=(RequestStatus.PENDING_APPROVAL,)):
    """
    Load the request an operator is acting on.

    Without an explicit id, falls back to the customer's newest request in
    fallback_statuses. That is only unambiguous because a customer never has
    more than one active request.
    """
    if request_id:
        request = db.session.get(CustomizationRequest, str(request_id))
        if request is None or request.customer_id != customer_id:
            raise RequestNotFound(f"Request {request_id} not found for customer {customer_id}")
        return request

    request = (
        CustomizationRequest.query
        .filter(
            CustomizationRequest.customer_id == customer_id,
            CustomizationRequest.status.in_(tuple(fallback_statuses)),
        )
        .order_by(CustomizationRequest.created_at.desc())
        .first()
    )
    if request is None:
        raise RequestNotFound("No pending approval request found for this customer")
    return request


def get_version(version_id) -> WebsiteVersion:
    version = db.session.get(WebsiteVersion, str(version_id)) if version_id else None
    if version is None:
        raise VersionNotFound(f"Website version {version_id} not found")
    return version
