import pytest
from sqlalchemy.exc import IntegrityError

from sitegate.extensions import db
from sitegate.models import AuditLog, Customer, CustomizationRequest, NotificationLog, RegenerationJob
from sitegate.models.regeneration_job import JobStatus
from sitegate.domain.errors import (
    CustomerNotFound,
    DuplicateSubmission,
    IllegalTransition,
    RequestNotFound,
    ValidationFailed,
)
from sitegate.domain.lifecycle.customization_request import RequestStatus, RequestType
from sitegate.application.workflow.approve_request import approve_request
from sitegate.application.workflow.customers import find_or_create_customer
from sitegate.application.workflow.regenerate_request import (
    reject_with_feedback,
    start_admin_regeneration,
)
from sitegate.application.workflow.retry_request import retry_request
from sitegate.application.workflow.start_initial_purchase import (
    describe_onboarding,
    start_initial_purchase,
)
from sitegate.application.workflow.submit_revision import submit_revision
from sitegate.services.notifications import NotificationKind


def _requests_for(customer_id):
    return CustomizationRequest.query.filter_by(customer_id=customer_id).all()


def test_submit_revision_creates_prospect_and_request(app, notifier):
    request = submit_revision(email="A@Biz.com ", description="make the header blue", notifier=notifier)

    customer = Customer.query.filter_by(email="a@biz.com").one()
    assert customer.business_name == "Demo Customer"
    assert not customer.is_paying

    assert request.customer_id == customer.id
    assert request.request_type == RequestType.REVISION
    assert request.status == RequestStatus.PROCESSING
    assert request.request_text == "make the header blue"
    assert request.revision_round == 1

    job = RegenerationJob.query.filter_by(request_id=request.id).one()
    assert job.status == JobStatus.QUEUED

    [(recipient, context)] = notifier.of_kind(NotificationKind.CUSTOMER_ACK)
    assert recipient == "a@biz.com"
    assert context["description"] == "make the header blue"
    assert context["site_label"] == "demo"


def test_submit_revision_rejects_resubmission_inside_window(app, notifier):
    first = submit_revision(email="a@biz.com", description="make the header blue", notifier=notifier)

    with pytest.raises(DuplicateSubmission) as exc_info:
        submit_revision(email="a@biz.com", description="and the footer", notifier=notifier)

    assert exc_info.value.retry_after > 0
    assert len(_requests_for(first.customer_id)) == 1
    assert db.session.get(CustomizationRequest, first.id).request_text == "make the header blue"
    assert len(notifier.of_kind(NotificationKind.CUSTOMER_ACK)) == 1


def test_follow_up_coalesces_into_active_request(app, notifier, no_cooldown):
    first = submit_revision(email="a@biz.com", description="make the header blue", notifier=notifier)
    second = submit_revision(email="a@biz.com", description="and the footer green", notifier=notifier)

    assert second.id == first.id
    assert second.revision_round == 2
    assert "make the header blue" in second.request_text
    assert "and the footer green (Customer follow-up)" in second.request_text
    assert len(_requests_for(first.customer_id)) == 1

    # The job queued for the first submission covers the second one too
    assert RegenerationJob.query.filter_by(request_id=first.id).count() == 1


def test_submit_revision_validates_input(app, notifier):
    with pytest.raises(ValidationFailed):
        submit_revision(email="not-an-email", description="x", notifier=notifier)

    with pytest.raises(ValidationFailed):
        submit_revision(email="a@biz.com", description="   ", notifier=notifier)

    with pytest.raises(ValidationFailed):
        submit_revision(email="a@biz.com", description="x" * 5001, notifier=notifier)

    with pytest.raises(CustomerNotFound):
        submit_revision(email="a@biz.com", description="x", customer_id="missing", notifier=notifier)

    assert CustomizationRequest.query.count() == 0


def test_ack_failure_does_not_abort_request(app, notifier):
    notifier.fail_kinds.add(NotificationKind.CUSTOMER_ACK)

    request = submit_revision(email="a@biz.com", description="make the header blue", notifier=notifier)

    assert db.session.get(CustomizationRequest, request.id).status == RequestStatus.PROCESSING
    log = NotificationLog.query.filter_by(request_id=request.id).one()
    assert log.kind == "customer_ack"
    assert log.status == "failed"
    assert "bounced" in log.error


def test_find_or_create_customer_is_idempotent(app):
    first = find_or_create_customer("owner@biz.com", business_name="Biz")
    again = find_or_create_customer("OWNER@biz.com")

    assert again.id == first.id
    assert Customer.query.count() == 1


def test_duplicate_email_is_refused_by_the_store(app):
    find_or_create_customer("owner@biz.com")

    duplicate = Customer()
    duplicate.email = "owner@biz.com"
    db.session.add(duplicate)
    with pytest.raises(IntegrityError):
        db.session.flush()
    db.session.rollback()


def test_initial_purchase_records_billing_and_onboarding(app, notifier):
    request = start_initial_purchase(
        notifier=notifier,
        email="owner@plumbing.com",
        business_name="Joe's Plumbing",
        industry="plumbing",
        stripe_subscription_id="sub_123",
        monthly_price="99.00",
        onboarding={"Tagline": "Fast and friendly", "Colors": "navy"},
    )

    customer = request.customer
    assert customer.is_paying
    assert customer.business_name == "Joe's Plumbing"
    assert request.request_type == RequestType.INITIAL_PURCHASE
    assert request.request_text.startswith("Initial website generation")
    assert "Tagline: Fast and friendly" in request.request_text

    [(recipient, context)] = notifier.of_kind(NotificationKind.CUSTOMER_ACK)
    assert recipient == "owner@plumbing.com"
    assert context["site_label"] == "website"


def test_purchase_upgrades_prospects_active_request(app, notifier):
    demo = submit_revision(email="owner@biz.com", description="show me a demo", notifier=notifier)

    request = start_initial_purchase(
        notifier=notifier,
        customer_id=demo.customer_id,
        stripe_subscription_id="sub_1",
        monthly_price=49,
    )

    assert request.id == demo.id
    assert request.request_type == RequestType.INITIAL_PURCHASE
    assert "show me a demo" in request.request_text
    assert "(Purchase details)" in request.request_text
    assert len(_requests_for(demo.customer_id)) == 1


def test_describe_onboarding():
    assert describe_onboarding(None) == "Initial website generation"
    assert describe_onboarding("Bakery downtown") == "Initial website generation\nBakery downtown"
    assert describe_onboarding({"Hours": "9-5", "Skipped": ""}) == "Initial website generation\nHours: 9-5"


def test_reject_with_feedback_preserves_history(app, notifier, consumer):
    request = submit_revision(email="a@biz.com", description="make the header blue", notifier=notifier)
    consumer.drain()
    pending = db.session.get(CustomizationRequest, request.id)
    rejected_version_id = pending.version_id

    updated = reject_with_feedback(customer_id=request.customer_id, feedback="make the header red instead")

    assert updated.id == request.id
    assert updated.status == RequestStatus.PROCESSING
    assert updated.revision_round == 2
    assert updated.approved_at is None
    assert "make the header blue" in updated.request_text
    assert "make the header red instead (Admin feedback)" in updated.request_text
    # Still linked to the rejected version until the next render lands
    assert updated.version_id == rejected_version_id
    assert RegenerationJob.query.filter_by(request_id=request.id, status=JobStatus.QUEUED).count() == 1
    assert len(_requests_for(request.customer_id)) == 1

    audit = AuditLog.query.filter_by(action="request.reject", entity_id=request.id).one()
    assert audit.payload["from_status"] == "pending_approval"


def test_reject_with_feedback_on_approved_request_is_illegal(app, notifier, consumer):
    request = submit_revision(email="a@biz.com", description="make the header blue", notifier=notifier)
    consumer.drain()
    approve_request(customer_id=request.customer_id, notifier=notifier)

    with pytest.raises(IllegalTransition):
        reject_with_feedback(customer_id=request.customer_id, request_id=request.id, feedback="one more thing")

    # Without an id there is no active request to fall back to
    with pytest.raises(RequestNotFound):
        reject_with_feedback(customer_id=request.customer_id, feedback="one more thing")


def test_reject_with_feedback_requires_feedback(app, notifier):
    request = submit_revision(email="a@biz.com", description="make the header blue", notifier=notifier)

    with pytest.raises(ValidationFailed):
        reject_with_feedback(customer_id=request.customer_id, feedback="")


def test_admin_regeneration_opens_admin_revision(app, notifier):
    customer = find_or_create_customer("owner@biz.com")

    request = start_admin_regeneration(customer_id=customer.id, instructions="refresh the photos")

    assert request.request_type == RequestType.ADMIN_REVISION
    assert request.request_text == "refresh the photos"
    assert RegenerationJob.query.filter_by(request_id=request.id).count() == 1
    # Operator-initiated work does not acknowledge to the customer
    assert notifier.of_kind(NotificationKind.CUSTOMER_ACK) == []


def test_admin_regeneration_coalesces_into_active_request(app, notifier):
    request = submit_revision(email="a@biz.com", description="make the header blue", notifier=notifier)

    merged = start_admin_regeneration(customer_id=request.customer_id, instructions="use the new logo")

    assert merged.id == request.id
    assert merged.request_type == RequestType.REVISION
    assert "use the new logo (Admin feedback)" in merged.request_text


def test_retry_request_clears_failure_marker(app, notifier, renderer, consumer):
    from sitegate.services.renderer import RendererError

    renderer.fail_with = RendererError("upstream 500")
    request = submit_revision(email="a@biz.com", description="make the header blue", notifier=notifier)
    consumer.drain()

    failed = db.session.get(CustomizationRequest, request.id)
    assert failed.has_failed

    retried = retry_request(customer_id=request.customer_id, request_id=request.id)

    assert retried.status == RequestStatus.PROCESSING
    assert retried.failed_at is None
    assert retried.last_error is None
    assert RegenerationJob.query.filter_by(request_id=request.id, status=JobStatus.QUEUED).count() == 1


def test_retry_request_refuses_pending_request(app, notifier, consumer):
    request = submit_revision(email="a@biz.com", description="make the header blue", notifier=notifier)
    consumer.drain()

    with pytest.raises(IllegalTransition):
        retry_request(customer_id=request.customer_id, request_id=request.id)
