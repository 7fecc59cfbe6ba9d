from flask import current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError
from sitegate.extensions import db
from sitegate.domain.errors import DuplicateSubmission, WorkflowError
from sitegate.domain.invariants.exceptions import InvariantViolation


def register_error_handlers(app):
    @app.errorhandler(WorkflowError)
    def handle_workflow_error(error):
        response = jsonify({
            "error": type(error).__name__,
            "message": error.message
        })
        response.status_code = error.status_code

        if isinstance(error, DuplicateSubmission) and error.retry_after:
            response.headers["Retry-After"] = str(error.retry_after)
        return response

    @app.errorhandler(InvariantViolation)
    def handle_invariant_violation(error):
        response = jsonify({
            "error": "InvariantViolation",
            "message": str(error)
        })
        response.status_code = 400
        return response

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(error):
        db.session.rollback()
        current_app.logger.error(f"Database error: {error}")
        response = jsonify({
            "error": "DatabaseUnavailable",
            "message": "The request could not be stored. Please try again."
        })
        response.status_code = 503
        return response
