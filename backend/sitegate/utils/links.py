from urllib.parse import urlencode
from flask import current_app


def _absolute(path, **params):
    base = current_app.config.get("PUBLIC_BASE_URL", "").rstrip("/")
    query = urlencode({key: value for key, value in params.items() if value is not None})
    return f"{base}{path}?{query}" if query else f"{base}{path}"


def review_link(customer_id, request_id):
    return _absolute("/api/v1/admin/review", customer_id=customer_id, request_id=request_id)


def approve_link(customer_id, request_id):
    return _absolute("/api/v1/admin/approve", customer_id=customer_id, request_id=request_id)


def site_link(customer):
    """Customer-facing URL: their own domain once billing has set one."""
    return customer.website_url or _absolute(f"/sites/{customer.id}")


def revision_form_link(customer):
    return _absolute("/request-changes", customer_id=customer.id, email=customer.email)
