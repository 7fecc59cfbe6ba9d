def _iso(value):
    return value.isoformat() if value else None


def normalize_request(request, admin=False):
    base = {
        "id": request.id,
        "customer_id": request.customer_id,
        "request_type": request.request_type.value,
        "status": request.status.value,
        "created_at": _iso(request.created_at),
    }

    if admin:
        base.update({
            "request_text": request.request_text,
            "revision_round": request.revision_round,
            "version_id": request.version_id,
            "completed_at": _iso(request.completed_at),
            "approved_at": _iso(request.approved_at),
            "failed_at": _iso(request.failed_at),
            "last_error": request.last_error,
            "updated_at": _iso(request.updated_at),
        })

    return base


def normalize_pending_request(request):
    customer = request.customer
    data = normalize_request(request, admin=True)
    data["customer"] = {
        "id": customer.id,
        "email": customer.email,
        "business_name": customer.display_name,
        "is_paying": customer.is_paying,
    }
    return data
