"""
Durable regeneration queue backed by the regeneration_jobs table.

Entry points stage a job in the same transaction that opens or mutates the
request, so a committed request always has work queued for it. Workers claim
jobs with a compare-and-swap on (status, attempts); a running job whose
heartbeat went stale is claimable again, which gives at-least-once delivery
across worker crashes.
"""
from datetime import timedelta

from flask import current_app
from sqlalchemy import and_, or_

from sitegate.extensions import db
from sitegate.models.base import utcnow
from sitegate.models.regeneration_job import JobStatus, RegenerationJob
from sitegate.utils.transaction import transactional

CLAIM_BATCH_SIZE = 10


def enqueue_regeneration(*, request_id, customer_id) -> RegenerationJob:
    queued = RegenerationJob.query.filter_by(request_id=request_id, status=JobStatus.QUEUED).first()
    if queued:
        return queued

    job = RegenerationJob()
    job.request_id = request_id
    job.customer_id = customer_id
    job.status = JobStatus.QUEUED
    job.attempts = 0
    job.available_at = utcnow()

    db.session.add(job)
    db.session.flush()

    current_app.logger.info(f"Queued regeneration job {job.id} for request {request_id}")
    return job


def claim_next_job(*, heartbeat_timeout):
    now = utcnow()
    stale_before = now - timedelta(seconds=heartbeat_timeout)

    candidates = (
        RegenerationJob.query
        .filter(
            or_(
                and_(
                    RegenerationJob.status == JobStatus.QUEUED,
                    RegenerationJob.available_at <= now,
                ),
                and_(
                    RegenerationJob.status == JobStatus.RUNNING,
                    RegenerationJob.heartbeat_at < stale_before,
                ),
            )
        )
        .order_by(RegenerationJob.available_at.asc(), RegenerationJob.created_at.asc())
        .limit(CLAIM_BATCH_SIZE)
        .all()
    )
    snapshot = [(job.id, job.status, job.attempts) for job in candidates]
    db.session.rollback()

    for job_id, status, attempts in snapshot:
        with transactional():
            claimed = RegenerationJob.query.filter(
                RegenerationJob.id == job_id,
                RegenerationJob.status == status,
                RegenerationJob.attempts == attempts,
            ).update(
                {
                    RegenerationJob.status: JobStatus.RUNNING,
                    RegenerationJob.attempts: attempts + 1,
                    RegenerationJob.heartbeat_at: now,
                    RegenerationJob.updated_at: now,
                },
                synchronize_session=False,
            )

        if claimed:
            if status == JobStatus.RUNNING:
                current_app.logger.warning(f"Reclaimed stale regeneration job {job_id}")
            current_app.logger.info(f"Claimed regeneration job {job_id} (attempt {attempts + 1})")
            return db.session.get(RegenerationJob, job_id)

    return None


def _finish(job_id, *, status, error=None, available_at=None):
    now = utcnow()
    values = {
        RegenerationJob.status: status,
        RegenerationJob.last_error: error[:2000] if error else None,
        RegenerationJob.updated_at: now,
    }
    if status in (JobStatus.SUCCEEDED, JobStatus.FAILED):
        values[RegenerationJob.finished_at] = now
    if available_at is not None:
        values[RegenerationJob.available_at] = available_at

    with transactional():
        return RegenerationJob.query.filter(
            RegenerationJob.id == job_id,
            RegenerationJob.status == JobStatus.RUNNING,
        ).update(values, synchronize_session=False) == 1


def complete_job(job_id) -> bool:
    return _finish(job_id, status=JobStatus.SUCCEEDED)


def fail_job(job_id, error) -> bool:
    current_app.logger.warning(f"Regeneration job {job_id} failed: {error}")
    return _finish(job_id, status=JobStatus.FAILED, error=error)


def defer_job(job_id, error, *, delay_seconds) -> bool:
    """Put a running job back in the queue after a transient error."""
    return _finish(
        job_id,
        status=JobStatus.QUEUED,
        error=error,
        available_at=utcnow() + timedelta(seconds=delay_seconds),
    )
