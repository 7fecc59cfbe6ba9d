import os

from flask import Flask, Response, current_app, render_template, request, send_file
from flask_swagger_ui import get_swaggerui_blueprint

from .config import config_by_name
from .extensions import db, migrate, jwt
from .errors import register_error_handlers
from .services import build_services


def create_app(
    config_name: str = "development",
    *,
    renderer=None,
    notifier=None,
    config_overrides=None,
) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.config.update(config_overrides or {})

    app.logger.setLevel(app.config["LOG_LEVEL"])

    # -------------------------------------------------
    # Extensions
    # -------------------------------------------------
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)

    from . import models  # noqa: F401  register tables with the metadata

    # -------------------------------------------------
    # Workflow collaborators (renderer, notifier)
    # -------------------------------------------------
    app.extensions["sitegate"] = build_services(app.config, renderer=renderer, notifier=notifier)

    # -------------------------------------------------
    # API Blueprints
    # -------------------------------------------------
    from .api.v1 import v1_bp

    app.register_blueprint(v1_bp, url_prefix="/api/v1")
    register_error_handlers(app)

    from .cli import register_cli

    register_cli(app)

    # -------------------------------------------------
    # Customer-facing pages
    # -------------------------------------------------
    @app.route("/sites/<customer_id>", methods=["GET"], endpoint="live_site")
    def serve_site(customer_id):
        from .application.workflow.review_queue import live_site

        version = live_site(customer_id)
        return Response(version.html_content, mimetype="text/html")

    @app.route("/request-changes", methods=["GET"], endpoint="request_changes")
    def request_changes_form():
        return render_template(
            "site/request_changes.html",
            customer_id=request.args.get("customer_id"),
            email=request.args.get("email"),
        )

    # -------------------------------------------------
    # Serve OpenAPI YAML
    # -------------------------------------------------
    @app.route("/openapi/workflow.yaml", methods=["GET"], endpoint="openapi_workflow")
    def serve_openapi():
        spec_path = os.path.join(
            current_app.root_path,
            "api",
            "v1",
            "workflow_openapi.yaml",
        )

        if not os.path.exists(spec_path):
            raise FileNotFoundError("workflow_openapi.yaml not found")

        return send_file(
            spec_path,
            mimetype="application/yaml",
            as_attachment=False,
        )

    # -------------------------------------------------
    # Swagger UI
    # -------------------------------------------------
    SWAGGER_URL = "/swagger"
    API_URL = "/openapi/workflow.yaml"

    swaggerui_blueprint = get_swaggerui_blueprint(
        SWAGGER_URL,
        API_URL,
        config={
            "app_name": "Sitegate Workflow API",
            "deepLinking": True,
            "persistAuthorization": True,
        },
    )

    app.register_blueprint(swaggerui_blueprint, url_prefix=SWAGGER_URL)

    return app
