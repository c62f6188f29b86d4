"""
Email campaign queue — RQ on Redis.

Job states map onto RQ's queue and registries:
  waiting   → the queue itself plus ScheduledJobRegistry (retries waiting out their backoff)
  active    → StartedJobRegistry
  completed → FinishedJobRegistry
  failed    → FailedJobRegistry (retries exhausted, terminal error, or stalled too often)
"""
import logging
import time

from rq import Queue, Retry
from rq.exceptions import NoSuchJobError
from rq.job import JobStatus

from campaign_bot.config import (
    BACKOFF_BASE_SECONDS, COMPLETED_JOB_TTL, FAILED_JOB_TTL, JOB_ATTEMPTS,
    KEEP_COMPLETED_JOBS, KEEP_FAILED_JOBS, LOCK_DURATION_SECONDS, MAX_STALLED_COUNT,
    QUEUE_NAME,
)
from campaign_bot.models.contact import ContactRow

logger = logging.getLogger('pipeline.queue')

PROCESS_ROW_JOB = 'campaign_bot.pipeline.jobs.process_row_job'
SEND_EMAIL_JOB = 'campaign_bot.pipeline.jobs.send_email_job'


# ── Lazy RQ queue (no Redis connection at import time) ───────────────────────

_queue = None


def get_queue() -> Queue:
    global _queue
    if _queue is None:
        from campaign_bot.extensions import queue_connection
        _queue = Queue(QUEUE_NAME, connection=queue_connection)
    return _queue


def retry_intervals():
    """Backoff before each retry: 2s, 4s, ... (exponential from the base)."""
    return [BACKOFF_BASE_SECONDS * 2 ** i for i in range(JOB_ATTEMPTS - 1)]


def retry_policy() -> Retry:
    return Retry(max=JOB_ATTEMPTS - 1, interval=retry_intervals())


def make_job_id(kind: str, row_id: int) -> str:
    """Unique per submission, so a finished job for the same row never blocks a re-run."""
    return f'{kind}-{row_id}-{int(time.time() * 1000)}'


def _enqueue(queue, func, *args, job_id, description):
    return queue.enqueue(
        func, *args,
        job_id=job_id,
        description=description,
        retry=retry_policy(),
        job_timeout=LOCK_DURATION_SECONDS,
        result_ttl=COMPLETED_JOB_TTL,
        failure_ttl=FAILED_JOB_TTL,
    )


def enqueue_row(row: ContactRow, queue: Queue = None) -> str:
    """Queue the full research → personalize → send pipeline for one row."""
    queue = queue or get_queue()
    job = _enqueue(
        queue, PROCESS_ROW_JOB, row.row_id, row.snapshot(),
        job_id=make_job_id('row', row.row_id),
        description=f'process-row-{row.row_id}',
    )
    logger.info("Added row %d to queue as %s", row.row_id, job.id)
    return job.id


def enqueue_send(row_id: int, recipient: str, subject: str, body_html: str,
                 template_id: str, slot_column: str, queue: Queue = None) -> str:
    """Queue delivery of an already personalized email."""
    queue = queue or get_queue()
    payload = {
        'row_id': row_id,
        'recipient': recipient,
        'subject': subject,
        'body_html': body_html,
        'template_id': template_id,
        'slot_column': slot_column,
    }
    job = _enqueue(
        queue, SEND_EMAIL_JOB, payload,
        job_id=make_job_id('send', row_id),
        description=f'send-email-{row_id}',
    )
    logger.info("Added send for row %d (%s) to queue as %s", row_id, slot_column, job.id)
    return job.id


# ── Introspection ─────────────────────────────────────────────────────────────

def get_queue_stats(queue: Queue = None) -> dict:
    queue = queue or get_queue()
    waiting = queue.count + queue.scheduled_job_registry.count
    # Raw ZCARD: registry.count runs cleanup(), which would fail expired
    # jobs before reclaim_stalled_jobs() gets to re-queue them
    started = queue.started_job_registry
    active = started.connection.zcard(started.key)
    completed = queue.finished_job_registry.count
    failed = queue.failed_job_registry.count
    return {
        'waiting': waiting,
        'active': active,
        'completed': completed,
        'failed': failed,
        'total': waiting + active + completed + failed,
    }


# ── Maintenance ───────────────────────────────────────────────────────────────

def drain(queue: Queue = None) -> int:
    """Cancel every waiting job (queued or scheduled for retry). Active jobs keep running."""
    queue = queue or get_queue()
    queued = queue.count
    queue.empty()

    scheduled = queue.scheduled_job_registry
    scheduled_ids = scheduled.get_job_ids()
    for job_id in scheduled_ids:
        _remove_with_job(scheduled, job_id)

    removed = queued + len(scheduled_ids)
    logger.info("Drained %d waiting jobs (%d scheduled retries)", removed, len(scheduled_ids))
    return removed


def _remove_with_job(registry, job_id):
    try:
        registry.remove(job_id, delete_job=True)
    except NoSuchJobError:
        # Job hash already expired; the registry entry is gone either way
        pass


def _trim_registry(registry, keep: int) -> int:
    """Oldest first: registries are scored by expiry, and every job shares one TTL."""
    registry.cleanup()
    job_ids = registry.get_job_ids()
    excess = job_ids[:max(len(job_ids) - keep, 0)]
    for job_id in excess:
        _remove_with_job(registry, job_id)
    return len(excess)


def clean_history(queue: Queue = None, keep_completed: int = KEEP_COMPLETED_JOBS,
                  keep_failed: int = KEEP_FAILED_JOBS) -> dict:
    """Drop the oldest completed / failed job records beyond the retention counts."""
    queue = queue or get_queue()
    removed = {
        'completed': _trim_registry(queue.finished_job_registry, keep_completed),
        'failed': _trim_registry(queue.failed_job_registry, keep_failed),
    }
    if removed['completed'] or removed['failed']:
        logger.info("Trimmed job history: %s", removed)
    return removed


def clear_queue(queue: Queue = None) -> dict:
    """Drain waiting jobs and delete all completed / failed history."""
    queue = queue or get_queue()
    drained = drain(queue)
    removed = clean_history(queue, keep_completed=0, keep_failed=0)
    logger.info("Queue cleared")
    return {'drained': drained, **removed}


def reclaim_stalled_jobs(queue: Queue = None, max_stalled: int = MAX_STALLED_COUNT) -> dict:
    """
    Re-queue jobs whose started-registry entry expired without a heartbeat.

    Each reclaim bumps job.meta['stalled_count']; a job that stalls more than
    `max_stalled` times is moved to the failed registry instead.
    """
    queue = queue or get_queue()
    registry = queue.started_job_registry
    reclaimed, failed = [], []

    for job_id in registry.get_expired_job_ids():
        # Another worker may already have reclaimed it
        if not registry.remove(job_id):
            continue
        job = queue.fetch_job(job_id)
        if job is None:
            continue

        stalled = int(job.meta.get('stalled_count', 0)) + 1
        job.meta['stalled_count'] = stalled
        job.save_meta()

        if stalled > max_stalled:
            job.set_status(JobStatus.FAILED)
            queue.failed_job_registry.add(
                job, ttl=FAILED_JOB_TTL,
                exc_string=f'Job stalled more than {max_stalled} times',
            )
            failed.append(job_id)
            logger.error("Job %s stalled %d times, moved to failed", job_id, stalled)
        else:
            queue.enqueue_job(job)
            reclaimed.append(job_id)
            logger.warning("Job %s stalled (%d/%d), re-queued", job_id, stalled, max_stalled)

    return {'reclaimed': reclaimed, 'failed': failed}
