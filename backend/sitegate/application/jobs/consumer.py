"""
Queue consumer that drives regenerations.

One consumer processes one job at a time; run several worker processes for
concurrency. Correctness does not depend on the number of workers: the
claim, every request transition and version numbering are all guarded in
the database.
"""
import time

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from sitegate.extensions import db
from sitegate.services import render_budget_seconds
from sitegate.domain.errors import RequestConflict, RequestNotFound
from sitegate.application.workflow.run_regeneration import (
    RegenerationOutcome,
    record_regeneration_failure,
    run_regeneration,
)
from .queue import claim_next_job, complete_job, defer_job, fail_job


class RegenerationConsumer:
    def __init__(
        self,
        *,
        renderer,
        notifier,
        heartbeat_timeout,
        max_attempts,
        retry_delay,
        poll_interval,
    ):
        self.renderer = renderer
        self.notifier = notifier
        self.heartbeat_timeout = heartbeat_timeout
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.poll_interval = poll_interval

    @classmethod
    def from_app(cls, app=None):
        app = app or current_app._get_current_object()
        services = app.extensions["sitegate"]
        budget = render_budget_seconds(app.config)
        if app.config["JOB_HEARTBEAT_TIMEOUT_SECONDS"] <= budget:
            app.logger.warning(
                f"JOB_HEARTBEAT_TIMEOUT_SECONDS is not above the {budget}s render budget; "
                "running jobs may be reclaimed"
            )
        return cls(
            renderer=services.renderer,
            notifier=services.notifier,
            heartbeat_timeout=app.config["JOB_HEARTBEAT_TIMEOUT_SECONDS"],
            max_attempts=app.config["JOB_MAX_ATTEMPTS"],
            retry_delay=app.config["JOB_RETRY_DELAY_SECONDS"],
            poll_interval=app.config["WORKER_POLL_INTERVAL_SECONDS"],
        )

    def run_once(self):
        """Claim and process one job. Returns the outcome, or None when idle."""
        job = claim_next_job(heartbeat_timeout=self.heartbeat_timeout)
        if job is None:
            return None

        job_id, request_id, attempts = job.id, job.request_id, job.attempts
        db.session.rollback()
        return self._process(job_id, request_id, attempts)

    def drain(self, limit=None):
        """Process jobs until the queue has nothing ready. Returns the outcomes."""
        outcomes = []
        while limit is None or len(outcomes) < limit:
            outcome = self.run_once()
            if outcome is None:
                break
            outcomes.append(outcome)
        return outcomes

    def run_forever(self, should_stop=lambda: False):
        current_app.logger.info("Regeneration worker started")
        while not should_stop():
            try:
                outcome = self.run_once()
            except SQLAlchemyError as e:
                db.session.rollback()
                current_app.logger.error(f"Worker could not reach the queue: {e}")
                outcome = None
            except Exception:
                db.session.rollback()
                current_app.logger.exception("Worker loop error")
                outcome = None

            if outcome is None:
                time.sleep(self.poll_interval)
        current_app.logger.info("Regeneration worker stopped")

    def _give_up(self, job_id, request_id, error):
        fail_job(job_id, error)
        try:
            record_regeneration_failure(request_id=request_id, error=error, notifier=self.notifier)
        except RequestNotFound:
            current_app.logger.warning(f"Request {request_id} vanished before its failure was recorded")
        return RegenerationOutcome(request_id=request_id, status="failed", error=error)

    def _process(self, job_id, request_id, attempts):
        if attempts > self.max_attempts:
            return self._give_up(job_id, request_id, f"Gave up after {attempts - 1} attempts")

        try:
            outcome = run_regeneration(request_id, renderer=self.renderer, notifier=self.notifier)
        except RequestNotFound as e:
            fail_job(job_id, str(e))
            return RegenerationOutcome(request_id=request_id, status="skipped", error=str(e))
        except (SQLAlchemyError, RequestConflict) as e:
            db.session.rollback()
            error = str(e)
            if attempts >= self.max_attempts:
                return self._give_up(job_id, request_id, error)

            current_app.logger.warning(
                f"Regeneration job {job_id} hit a transient error (attempt {attempts}); retrying: {error}"
            )
            defer_job(job_id, error, delay_seconds=self.retry_delay)
            return RegenerationOutcome(request_id=request_id, status="deferred", error=error)
        except Exception as e:
            # Unknown failures are not retried; the job must not stay running
            db.session.rollback()
            current_app.logger.exception(f"Regeneration job {job_id} crashed")
            return self._give_up(job_id, request_id, f"{type(e).__name__}: {e}")

        if outcome.succeeded:
            complete_job(job_id)
        else:
            fail_job(job_id, outcome.error or outcome.status)
        return outcome
