import os

import pytest

from sitegate.extensions import db
from sitegate.models import AuditLog, Customer, CustomizationRequest, WebsiteVersion
from sitegate.domain.errors import AlreadyHandled, RequestNotFound
from sitegate.domain.invariants.exceptions import InvariantViolation
from sitegate.domain.lifecycle.customization_request import RequestStatus, RequestType
from sitegate.application.workflow.approve_request import approve_request
from sitegate.application.workflow.regenerate_request import reject_with_feedback
from sitegate.application.workflow.review_queue import (
    get_review,
    list_pending,
    list_versions,
    list_websites,
    live_site,
)
from sitegate.application.workflow.start_initial_purchase import start_initial_purchase
from sitegate.application.workflow.submit_revision import submit_revision
from sitegate.services.notifications import NotificationKind
from sitegate.utils.publishing import site_path


@pytest.fixture
def pending_revision(app, notifier, consumer):
    request = submit_revision(email="a@biz.com", description="make the header blue", notifier=notifier)
    consumer.drain()
    return db.session.get(CustomizationRequest, request.id)


@pytest.fixture
def pending_purchase(app, notifier, consumer):
    request = start_initial_purchase(
        notifier=notifier,
        email="owner@plumbing.com",
        business_name="Joe's Plumbing",
        stripe_subscription_id="sub_123",
        monthly_price=99,
    )
    consumer.drain()
    return db.session.get(CustomizationRequest, request.id)


def test_approve_revision_delivers_and_publishes(app, notifier, pending_revision):
    result = approve_request(customer_id=pending_revision.customer_id, notifier=notifier)

    assert result.request.status == RequestStatus.APPROVED
    assert result.request.approved_at is not None
    assert result.version.is_current is True
    assert result.notification == "revision_delivered"
    assert result.notified is True

    [(recipient, context)] = notifier.of_kind(NotificationKind.REVISION_DELIVERED)
    assert recipient == "a@biz.com"
    assert context["site_url"] == f"http://sitegate.test/sites/{pending_revision.customer_id}"
    assert notifier.of_kind(NotificationKind.PAID_WELCOME) == []

    path = site_path(pending_revision.customer_id)
    assert result.published_path == path
    with open(path, encoding="utf-8") as handle:
        assert handle.read() == result.version.html_content

    assert AuditLog.query.filter_by(action="request.approve", entity_id=pending_revision.id).count() == 1


def test_paid_initial_purchase_gets_welcome_email(app, notifier, pending_purchase):
    result = approve_request(customer_id=pending_purchase.customer_id, notifier=notifier)

    assert result.notification == "paid_welcome"
    [(recipient, context)] = notifier.of_kind(NotificationKind.PAID_WELCOME)
    assert recipient == "owner@plumbing.com"
    assert "request-changes" in context["revision_url"]
    assert notifier.of_kind(NotificationKind.REVISION_DELIVERED) == []


def test_unpaid_initial_purchase_gets_generic_delivery(app, notifier, consumer):
    request = start_initial_purchase(notifier=notifier, email="prospect@biz.com")
    consumer.drain()
    assert request.request_type == RequestType.INITIAL_PURCHASE

    result = approve_request(customer_id=request.customer_id, notifier=notifier)

    assert result.notification == "revision_delivered"


def test_second_approval_is_refused_without_email(app, notifier, pending_revision):
    approve_request(customer_id=pending_revision.customer_id, notifier=notifier)

    with pytest.raises(AlreadyHandled):
        approve_request(
            customer_id=pending_revision.customer_id,
            request_id=pending_revision.id,
            notifier=notifier,
        )

    assert len(notifier.of_kind(NotificationKind.REVISION_DELIVERED)) == 1


def test_approve_without_pending_request(app, notifier):
    submit_revision(email="a@biz.com", description="make the header blue", notifier=notifier)
    customer = Customer.query.one()

    # Still processing: nothing to approve yet
    with pytest.raises(RequestNotFound):
        approve_request(customer_id=customer.id, notifier=notifier)


def test_approve_request_of_another_customer_is_not_found(app, notifier, pending_revision):
    other = submit_revision(email="b@biz.com", description="other site", notifier=notifier)

    with pytest.raises(RequestNotFound):
        approve_request(customer_id=other.customer_id, request_id=pending_revision.id, notifier=notifier)


def test_delivery_failure_keeps_approval(app, notifier, pending_revision):
    notifier.fail_kinds.add(NotificationKind.REVISION_DELIVERED)

    result = approve_request(customer_id=pending_revision.customer_id, notifier=notifier)

    assert result.notified is False
    assert db.session.get(CustomizationRequest, pending_revision.id).status == RequestStatus.APPROVED


def test_publish_failure_keeps_approval(app, notifier, pending_revision, tmp_path):
    blocker = tmp_path / "blocked"
    blocker.write_text("not a directory")
    app.config["PUBLISH_FOLDER"] = str(blocker)

    result = approve_request(customer_id=pending_revision.customer_id, notifier=notifier)

    assert result.published_path is None
    assert result.request.status == RequestStatus.APPROVED
    assert live_site(pending_revision.customer_id).id == result.version.id


def test_approval_moves_current_flag_forward(app, notifier, consumer, no_cooldown):
    first = submit_revision(email="a@biz.com", description="v1", notifier=notifier)
    consumer.drain()
    approve_request(customer_id=first.customer_id, notifier=notifier)

    submit_revision(email="a@biz.com", description="v2", notifier=notifier)
    consumer.drain()
    approve_request(customer_id=first.customer_id, notifier=notifier)

    versions = (
        WebsiteVersion.query
        .filter_by(customer_id=first.customer_id)
        .order_by(WebsiteVersion.version_number)
        .all()
    )
    assert [v.version_number for v in versions] == [1, 2]
    assert [v.is_current for v in versions] == [False, True]


def test_pending_queue_is_split_by_type(app, notifier, pending_revision, pending_purchase):
    pending = list_pending()

    assert [r.id for r in pending["initial_purchases"]] == [pending_purchase.id]
    assert [r.id for r in pending["revisions"]] == [pending_revision.id]


def test_get_review_returns_linked_version(app, pending_revision):
    request, version = get_review(pending_revision.customer_id)

    assert request.id == pending_revision.id
    assert version.id == pending_revision.version_id


def test_websites_and_version_history(app, notifier, pending_revision, consumer):
    reject_with_feedback(customer_id=pending_revision.customer_id, feedback="bigger logo")
    consumer.drain()

    [entry] = list_websites()
    assert entry["customer"].id == pending_revision.customer_id
    assert entry["version_count"] == 2

    page, meta = list_versions(pending_revision.customer_id, limit=1)
    assert [v.version_number for v in page] == [2]
    assert meta["has_more"] is True

    rest, meta = list_versions(pending_revision.customer_id, cursor=meta["next_cursor"], limit=1)
    assert [v.version_number for v in rest] == [1]
    assert meta["has_more"] is False


def test_versions_are_immutable(app, pending_revision):
    version = db.session.get(WebsiteVersion, pending_revision.version_id)

    version.html_content = "<html>tampered</html>"
    with pytest.raises(InvariantViolation):
        db.session.flush()
    db.session.rollback()

    db.session.delete(db.session.get(WebsiteVersion, pending_revision.version_id))
    with pytest.raises(InvariantViolation):
        db.session.flush()
    db.session.rollback()


def test_published_file_is_named_by_customer(app):
    assert os.path.basename(site_path("abc")) == "abc.html"
