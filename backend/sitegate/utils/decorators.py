from functools import wraps
from flask import current_app, g, jsonify
from flask_jwt_extended import get_jwt, get_jwt_identity, verify_jwt_in_request

DEFAULT_OPERATOR = "operator"


def operator_required(fn):
    """
    Resolves the operator acting on an admin route into g.actor_id.

    With ADMIN_REQUIRE_JWT a valid token carrying role "admin" is mandatory;
    otherwise a token is optional and only used to attribute audit entries.
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if current_app.config.get("ADMIN_REQUIRE_JWT"):
            verify_jwt_in_request()
            if get_jwt().get("role") != "admin":
                return jsonify({"error": "Insufficient permissions"}), 403
        else:
            verify_jwt_in_request(optional=True)

        g.actor_id = get_jwt_identity() or DEFAULT_OPERATOR
        return fn(*args, **kwargs)
    return wrapper


def customer_actor(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        g.actor_id = "customer"
        return fn(*args, **kwargs)
    return wrapper
