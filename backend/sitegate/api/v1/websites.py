from flask import Response, jsonify, request
from sitegate.application.workflow.lookup import get_version
from sitegate.application.workflow.regenerate_request import start_admin_regeneration
from sitegate.application.workflow.review_queue import list_versions, list_websites
from sitegate.normalizers.customer import normalize_website
from sitegate.normalizers.customization_request import normalize_request
from sitegate.normalizers.pagination import normalize_pagination
from sitegate.normalizers.website_version import normalize_version
from sitegate.utils.decorators import operator_required
from sitegate.utils.pagination import parse_limit
from . import v1_bp, request_data


@v1_bp.route("/admin/websites", methods=["GET"])
@operator_required
def websites():
    return jsonify({"data": [normalize_website(entry) for entry in list_websites()]})


@v1_bp.route("/admin/websites/<customer_id>/versions", methods=["GET"])
@operator_required
def website_versions(customer_id):
    items, meta = list_versions(
        customer_id,
        cursor=request.args.get("cursor"),
        limit=parse_limit(request.args.get("limit")),
    )
    return jsonify(normalize_pagination(items, normalize_version, cursor=meta))


@v1_bp.route("/admin/websites/versions/<version_id>", methods=["GET"])
@operator_required
def website_version(version_id):
    version = get_version(version_id)

    if request.args.get("format") == "json":
        return jsonify(normalize_version(version, include_html=True))
    return Response(version.html_content, mimetype="text/html")


@v1_bp.route("/admin/websites/<customer_id>/regenerate", methods=["POST"])
@operator_required
def regenerate_website(customer_id):
    data = request_data()

    req = start_admin_regeneration(
        customer_id=customer_id,
        instructions=data.get("instructions") or data.get("feedback"),
    )

    return jsonify({
        "request": normalize_request(req, admin=True),
        "message": "Regeneration queued"
    }), 202
