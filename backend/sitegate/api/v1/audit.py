from flask import jsonify, request
from sitegate.models.audit_log import AuditLog
from sitegate.normalizers.audit import normalize_audit_log
from sitegate.normalizers.pagination import normalize_pagination
from sitegate.utils.decorators import operator_required
from sitegate.utils.pagination import paginate_newest_first, parse_limit
from . import v1_bp


@v1_bp.route("/admin/audit", methods=["GET"])
@operator_required
def list_audit_logs():
    query = AuditLog.query

    # Optional filters
    if action := request.args.get("action"):
        query = query.filter(AuditLog.action == action)

    if entity_type := request.args.get("entity_type"):
        query = query.filter(AuditLog.entity_type == entity_type)

    if entity_id := request.args.get("entity_id"):
        query = query.filter(AuditLog.entity_id == entity_id)

    logs, meta = paginate_newest_first(
        query,
        model=AuditLog,
        cursor=request.args.get("cursor"),
        limit=parse_limit(request.args.get("limit")),
    )

    return jsonify(normalize_pagination(logs, normalize_audit_log, cursor=meta)), 200
