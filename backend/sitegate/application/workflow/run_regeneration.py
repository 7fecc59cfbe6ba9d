"""
Regeneration: render the active request and hand the result to review.

Runs inside the queue consumer, never on a request thread. The render call
can take minutes, so no database transaction is held open across it; the
request's round is captured up front and every write afterwards is a
compare-and-swap on that round.
"""
from dataclasses import dataclass
from typing import Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from sitegate.extensions import db
from sitegate.models.base import utcnow
from sitegate.models.customization_request import CustomizationRequest
from sitegate.models.website_version import WebsiteVersion
from sitegate.domain.errors import RequestConflict, RequestNotFound
from sitegate.domain.invariants.exceptions import InvariantViolation
from sitegate.domain.invariants.website_version import assert_renderable_html
from sitegate.domain.lifecycle.customization_request import RequestStatus
from sitegate.services.notifications import NotificationKind
from sitegate.services.renderer import CustomerProfile, RendererError
from sitegate.utils.audit import log_action
from sitegate.utils.transaction import transactional
from sitegate.utils.versioning import current_version, next_version_number
from .notify import failure_context, notify, operator_inbox, review_context
from .transitions import relink_version, transition_request

MAX_STORE_ATTEMPTS = 3


@dataclass
class RegenerationOutcome:
    request_id: str
    # advanced | relinked | superseded | failed | skipped | deferred
    status: str
    version_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status in ("advanced", "relinked", "superseded", "skipped")


def record_regeneration_failure(*, request_id, error, notifier, revision_round=None) -> bool:
    """
    Set the failure marker on a processing request and alert the operator.

    The request stays processing so it can be retried. Returns False when
    the request had already moved on.
    """
    request = db.session.get(CustomizationRequest, request_id)
    if request is None:
        raise RequestNotFound(f"Request {request_id} not found")

    error = (error or "Regeneration failed")[:2000]

    with transactional():
        marked = transition_request(
            request_id,
            from_statuses=(RequestStatus.PROCESSING,),
            to_status=RequestStatus.PROCESSING,
            values={
                CustomizationRequest.failed_at: utcnow(),
                CustomizationRequest.last_error: error,
            },
            revision_round=revision_round,
        )
        if marked:
            log_action(
                action="request.fail",
                entity_type="customization_request",
                entity_id=request_id,
                payload={"error": error},
            )

    if not marked:
        current_app.logger.info(f"Request {request_id} moved on; not marking it failed")
        return False

    current_app.logger.error(f"Regeneration failed for request {request_id}: {error}")

    request = db.session.get(CustomizationRequest, request_id)
    notify(
        notifier,
        NotificationKind.FAILURE_ALERT,
        operator_inbox(),
        failure_context(request.customer, request, error),
        customer_id=request.customer_id,
        request_id=request_id,
    )
    return True


def _render_failed(request_id, error, *, notifier, revision_round):
    record_regeneration_failure(
        request_id=request_id,
        error=error,
        notifier=notifier,
        revision_round=revision_round,
    )
    return RegenerationOutcome(request_id=request_id, status="failed", error=error)


def _store_render(*, request_id, customer_id, revision_round, result):
    for attempt in range(1, MAX_STORE_ATTEMPTS + 1):
        try:
            with transactional():
                version = WebsiteVersion()
                version.customer_id = customer_id
                version.version_number = next_version_number(customer_id)
                version.html_content = result.html
                version.change_description = result.version_description
                version.request_id = request_id
                version.is_current = False

                db.session.add(version)
                db.session.flush()

                now = utcnow()
                if transition_request(
                    request_id,
                    from_statuses=(RequestStatus.PROCESSING,),
                    to_status=RequestStatus.PENDING_APPROVAL,
                    values={
                        CustomizationRequest.version_id: version.id,
                        CustomizationRequest.completed_at: now,
                        CustomizationRequest.failed_at: None,
                        CustomizationRequest.last_error: None,
                    },
                    revision_round=revision_round,
                ):
                    status = "advanced"
                elif relink_version(request_id, version_id=version.id, revision_round=revision_round):
                    status = "relinked"
                else:
                    status = "superseded"

                log_action(
                    action="version.create",
                    entity_type="website_version",
                    entity_id=version.id,
                    payload={
                        "request_id": request_id,
                        "version_number": version.version_number,
                        "revision_round": revision_round,
                        "outcome": status,
                    },
                )
                version_id = version.id
                version_number = version.version_number
        except IntegrityError as exc:
            # Another worker took the same version number
            current_app.logger.warning(
                f"Version number race for customer {customer_id} (attempt {attempt}): {exc}"
            )
            continue

        return status, version_id, version_number

    raise RequestConflict(f"Could not store a new version for request {request_id}")


def run_regeneration(request_id, *, renderer, notifier) -> RegenerationOutcome:
    request = db.session.get(CustomizationRequest, request_id)
    if request is None:
        raise RequestNotFound(f"Request {request_id} not found")

    if not request.is_active:
        current_app.logger.info(f"Request {request_id} is {request.status.value}; nothing to render")
        return RegenerationOutcome(request_id=request_id, status="skipped")

    customer_id = request.customer_id
    profile = CustomerProfile.from_customer(request.customer)
    description = request.request_text
    revision_round = request.revision_round

    live = current_version(customer_id)
    current_html = live.html_content if live else None

    # Release the read transaction before the long render call
    db.session.rollback()

    current_app.logger.info(f"Rendering request {request_id} (round {revision_round})")

    try:
        result = renderer.render(profile, description, current_html=current_html)
        assert_renderable_html(result.html)
    except (RendererError, InvariantViolation) as exc:
        return _render_failed(request_id, str(exc), notifier=notifier, revision_round=revision_round)
    except Exception as exc:
        # Third-party renderers fail in their own ways; all of them are render failures
        current_app.logger.exception(f"Renderer crashed on request {request_id}")
        error = f"{type(exc).__name__}: {exc}"
        return _render_failed(request_id, error, notifier=notifier, revision_round=revision_round)

    status, version_id, version_number = _store_render(
        request_id=request_id,
        customer_id=customer_id,
        revision_round=revision_round,
        result=result,
    )

    if status == "superseded":
        current_app.logger.info(
            f"Version {version_number} for request {request_id} is from a stale round; kept as history only"
        )
        return RegenerationOutcome(request_id=request_id, status=status, version_id=version_id)

    if status == "relinked":
        current_app.logger.info(f"Request {request_id} now points at version {version_number}")
        return RegenerationOutcome(request_id=request_id, status=status, version_id=version_id)

    request = db.session.get(CustomizationRequest, request_id)
    notify(
        notifier,
        NotificationKind.ADMIN_REVIEW_REQUEST,
        operator_inbox(),
        review_context(request.customer, request, version_number),
        customer_id=customer_id,
        request_id=request_id,
    )

    current_app.logger.info(f"Request {request_id} is pending approval with version {version_number}")
    return RegenerationOutcome(request_id=request_id, status=status, version_id=version_id)
