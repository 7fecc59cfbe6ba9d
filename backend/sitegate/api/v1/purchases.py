from flask import jsonify
from sitegate.extensions import get_services
from sitegate.application.workflow.customers import BILLING_FIELDS
from sitegate.application.workflow.start_initial_purchase import start_initial_purchase
from sitegate.utils.decorators import operator_required
from . import v1_bp, request_data


@v1_bp.route("/purchases", methods=["POST"])
@operator_required
def record_purchase():
    """Called by the billing subsystem once a subscription is active."""
    data = request_data()
    billing = {field: data.get(field) for field in BILLING_FIELDS}

    request = start_initial_purchase(
        notifier=get_services().notifier,
        email=data.get("email"),
        customer_id=data.get("customer_id"),
        onboarding=data.get("onboarding"),
        **billing,
    )

    return jsonify({
        "request_id": request.id,
        "customer_id": request.customer_id,
        "status": request.status.value
    }), 202
