from flask import jsonify
from sitegate.extensions import get_services
from sitegate.application.workflow.submit_revision import submit_revision
from sitegate.utils.decorators import customer_actor
from . import v1_bp, request_data


@v1_bp.route("/requests", methods=["POST"])
@customer_actor
def submit_request():
    data = request_data()

    request = submit_revision(
        email=data.get("email") or data.get("customerEmail"),
        description=data.get("description") or data.get("changes"),
        customer_id=data.get("customer_id") or data.get("customerId"),
        business_name=data.get("business_name") or data.get("businessName"),
        notifier=get_services().notifier,
    )

    return jsonify({
        "request_id": request.id,
        "status": request.status.value,
        "message": "Thanks! We received your request and will email you when it is ready."
    }), 202
