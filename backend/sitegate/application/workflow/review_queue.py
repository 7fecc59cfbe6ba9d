from sqlalchemy import func

from sitegate.extensions import db
from sitegate.models.customer import Customer
from sitegate.models.customization_request import CustomizationRequest
from sitegate.models.website_version import WebsiteVersion
from sitegate.domain.errors import VersionNotFound
from sitegate.domain.lifecycle.customization_request import (
    ACTIVE_STATUSES,
    RequestStatus,
    RequestType,
)
from sitegate.utils.pagination import paginate_newest_first
from sitegate.utils.versioning import current_version
from .customers import get_customer
from .lookup import get_version, resolve_request


def list_pending():
    """Requests awaiting a decision, split the way operators review them."""
    requests = (
        CustomizationRequest.query
        .filter(CustomizationRequest.status == RequestStatus.PENDING_APPROVAL)
        .order_by(CustomizationRequest.completed_at.asc(), CustomizationRequest.created_at.asc())
        .all()
    )

    return {
        "initial_purchases": [r for r in requests if r.request_type == RequestType.INITIAL_PURCHASE],
        "revisions": [r for r in requests if r.request_type != RequestType.INITIAL_PURCHASE],
    }


def list_in_progress():
    return (
        CustomizationRequest.query
        .filter(CustomizationRequest.status == RequestStatus.PROCESSING)
        .order_by(CustomizationRequest.created_at.asc())
        .all()
    )


def get_review(customer_id, request_id=None):
    """The request under review plus the version it points at."""
    customer = get_customer(customer_id)
    request = resolve_request(customer.id, request_id, fallback_statuses=ACTIVE_STATUSES)
    version = get_version(request.version_id) if request.version_id else None
    return request, version


def list_websites():
    """Every customer with at least one version, most recently updated first."""
    rows = (
        db.session.query(
            Customer,
            func.count(WebsiteVersion.id),
            func.max(WebsiteVersion.created_at),
        )
        .join(WebsiteVersion, WebsiteVersion.customer_id == Customer.id)
        .group_by(Customer.id)
        .order_by(func.max(WebsiteVersion.created_at).desc())
        .all()
    )

    return [
        {"customer": customer, "version_count": count, "last_updated": last_updated}
        for customer, count, last_updated in rows
    ]


def list_versions(customer_id, *, cursor=None, limit=20):
    customer = get_customer(customer_id)
    query = WebsiteVersion.query.filter(WebsiteVersion.customer_id == customer.id)
    return paginate_newest_first(query, model=WebsiteVersion, cursor=cursor, limit=limit)


def live_site(customer_id) -> WebsiteVersion:
    version = current_version(str(customer_id))
    if version is None:
        raise VersionNotFound(f"No approved website for customer {customer_id}")
    return version
