from flask import Response, jsonify, request
from sitegate.extensions import get_services
from sitegate.application.workflow.approve_request import approve_request
from sitegate.application.workflow.regenerate_request import reject_with_feedback
from sitegate.application.workflow.retry_request import retry_request
from sitegate.application.workflow.review_queue import get_review, list_in_progress, list_pending
from sitegate.domain.errors import ValidationFailed, VersionNotFound
from sitegate.normalizers.customer import normalize_customer
from sitegate.normalizers.customization_request import normalize_pending_request, normalize_request
from sitegate.normalizers.website_version import normalize_version
from sitegate.utils.decorators import operator_required
from sitegate.utils.links import approve_link, review_link
from . import v1_bp, request_data


def _review_target(data):
    customer_id = data.get("customer_id") or data.get("customerId")
    if not customer_id:
        raise ValidationFailed("customer_id is required")
    return customer_id, data.get("request_id") or data.get("requestId") or data.get("id")


def _pending_item(req):
    item = normalize_pending_request(req)
    item["review_url"] = review_link(req.customer_id, req.id)
    item["approve_url"] = approve_link(req.customer_id, req.id)
    return item


@v1_bp.route("/admin/pending", methods=["GET"])
@operator_required
def pending_requests():
    pending = list_pending()

    return jsonify({
        "initial_purchases": [_pending_item(r) for r in pending["initial_purchases"]],
        "revisions": [_pending_item(r) for r in pending["revisions"]],
        "in_progress": [normalize_request(r, admin=True) for r in list_in_progress()],
    })


@v1_bp.route("/admin/review", methods=["GET"])
@operator_required
def review_request():
    customer_id, request_id = _review_target(request.args)
    req, version = get_review(customer_id, request_id)

    return jsonify({
        "request": normalize_request(req, admin=True),
        "customer": normalize_customer(req.customer),
        "version": normalize_version(version) if version else None,
        "preview_url": f"/api/v1/admin/review/preview?customer_id={req.customer_id}&request_id={req.id}",
        "approve_url": approve_link(req.customer_id, req.id),
    })


@v1_bp.route("/admin/review/preview", methods=["GET"])
@operator_required
def preview_request():
    customer_id, request_id = _review_target(request.args)
    req, version = get_review(customer_id, request_id)
    if version is None:
        raise VersionNotFound(f"Request {req.id} has no rendered version yet")

    return Response(version.html_content, mimetype="text/html")


@v1_bp.route("/admin/approve", methods=["GET", "POST"])
@operator_required
def approve():
    data = request.args if request.method == "GET" else request_data()
    customer_id, request_id = _review_target(data)

    result = approve_request(
        customer_id=customer_id,
        request_id=request_id,
        notifier=get_services().notifier,
    )

    return jsonify({
        "request": normalize_request(result.request, admin=True),
        "version": normalize_version(result.version),
        "notification": result.notification,
        "notified": result.notified,
        "message": "Approved and delivered"
    }), 200


@v1_bp.route("/admin/regenerate", methods=["POST"])
@operator_required
def regenerate():
    data = request_data()
    customer_id, request_id = _review_target(data)

    req = reject_with_feedback(
        customer_id=customer_id,
        request_id=request_id,
        feedback=data.get("feedback"),
    )

    return jsonify({
        "request": normalize_request(req, admin=True),
        "message": "Regeneration queued"
    }), 202


@v1_bp.route("/admin/requests/<request_id>/retry", methods=["POST"])
@operator_required
def retry(request_id):
    data = request_data()
    customer_id, _ = _review_target(data)

    req = retry_request(customer_id=customer_id, request_id=request_id)

    return jsonify({
        "request": normalize_request(req, admin=True),
        "message": "Regeneration queued"
    }), 202
