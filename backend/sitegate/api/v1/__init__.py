from flask import Blueprint, request

# Create the versioned blueprint
v1_bp = Blueprint("v1", __name__)


def request_data():
    """JSON body, or form fields for the plain HTML forms."""
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict() or request.args.to_dict()


# Import route modules so they register with v1_bp
from . import health
from . import customer_requests
from . import purchases
from . import review
from . import websites
from . import audit
