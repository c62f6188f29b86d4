"""
Campaign worker and worker pool.

CampaignWorker is a stock RQ worker with three hooks:
  - every job start passes the shared sliding-window limiter after the job
    is registered as started
  - terminal errors (InvalidRecipient, RowNotFound, ConfigurationError) skip
    the remaining retries
  - registry maintenance re-queues stalled jobs and trims job history

start_pool() runs CAMPAIGN_CONCURRENCY of them under rq's WorkerPool.
"""
import logging
import sys

from rq import Worker
from rq.worker_pool import WorkerPool

from campaign_bot.config import CAMPAIGN_CONCURRENCY, QUEUE_NAME
from campaign_bot.errors import TERMINAL_ERRORS
from campaign_bot.pipeline.limiter import SlidingWindowLimiter
from campaign_bot.pipeline.queue import clean_history, reclaim_stalled_jobs

logger = logging.getLogger('pipeline.worker')


class CampaignWorker(Worker):

    def __init__(self, *args, limiter=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.limiter = limiter or SlidingWindowLimiter(self.connection)

    def prepare_job_execution(self, job, *args, **kwargs):
        super().prepare_job_execution(job, *args, **kwargs)
        # The job is already in StartedJobRegistry while it waits for a slot
        waited = self.limiter.acquire()
        if waited:
            logger.info("Job %s waited %.1fs for a start slot", job.id, waited)

    def handle_job_failure(self, job, queue, started_job_registry=None, exc_string=''):
        exc_type = sys.exc_info()[0]
        if exc_type is not None and issubclass(exc_type, TERMINAL_ERRORS) and job.retries_left:
            logger.warning("Job %s failed with %s, not retrying", job.id, exc_type.__name__)
            job.retries_left = 0
        return super().handle_job_failure(
            job, queue, started_job_registry=started_job_registry, exc_string=exc_string,
        )

    def clean_registries(self):
        for queue in self.queues:
            result = reclaim_stalled_jobs(queue)
            if result['reclaimed'] or result['failed']:
                logger.info("Stalled jobs on %s: %s", queue.name, result)
            clean_history(queue)
        super().clean_registries()


def start_pool(concurrency: int = None, burst: bool = False, logging_level: str = 'INFO'):
    """Block running the worker pool until it is stopped (or drained, in burst mode)."""
    from campaign_bot.extensions import queue_connection

    num_workers = concurrency or CAMPAIGN_CONCURRENCY
    pool = WorkerPool(
        [QUEUE_NAME],
        connection=queue_connection,
        num_workers=num_workers,
        worker_class=CampaignWorker,
    )
    logger.info("Worker pool started with concurrency %d on queue %s", num_workers, QUEUE_NAME)
    pool.start(burst=burst, logging_level=logging_level)
    logger.info("Worker pool stopped")
