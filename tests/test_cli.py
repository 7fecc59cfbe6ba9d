from flask_jwt_extended import decode_token

from sitegate.extensions import db
from sitegate.models import CustomizationRequest
from sitegate.domain.lifecycle.customization_request import RequestStatus
from sitegate.application.workflow.submit_revision import submit_revision


def test_worker_drain_processes_queue(app, notifier):
    request = submit_revision(email="a@biz.com", description="make the header blue", notifier=notifier)

    result = app.test_cli_runner().invoke(args=["worker", "drain"])

    assert result.exit_code == 0, result.output
    assert f"{request.id}: advanced" in result.output
    assert "Processed 1 job(s)" in result.output
    assert db.session.get(CustomizationRequest, request.id).status == RequestStatus.PENDING_APPROVAL


def test_worker_drain_respects_limit(app, notifier):
    submit_revision(email="a@biz.com", description="one", notifier=notifier)
    submit_revision(email="b@biz.com", description="two", notifier=notifier)

    result = app.test_cli_runner().invoke(args=["worker", "drain", "--limit", "1"])

    assert "Processed 1 job(s)" in result.output
    assert CustomizationRequest.query.filter_by(status=RequestStatus.PROCESSING).count() == 1


def test_issue_operator_token(app):
    result = app.test_cli_runner().invoke(args=["issue-operator-token", "dana"])

    assert result.exit_code == 0, result.output
    claims = decode_token(result.output.strip())
    assert claims["sub"] == "dana"
    assert claims["role"] == "admin"
