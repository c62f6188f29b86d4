"""
Campaign manager — turns the contact table into queued jobs.

run_all() and run_one() only enqueue. They return as soon as the jobs are
submitted (status 'submitted'); per-row outcomes show up later in the slot
columns and in the queue statistics.
"""
import logging
import time

from campaign_bot.config import ENQUEUE_DELAY_SECONDS, MAX_EMAILS_PER_RUN
from campaign_bot.models.stats import CampaignStats
from campaign_bot.pipeline.policy import is_eligible
from campaign_bot.pipeline.queue import enqueue_row
from campaign_bot.stores.base import get_row_store

logger = logging.getLogger('pipeline.manager')


def run_all(limit: int = None) -> CampaignStats:
    """
    Enqueue one job per eligible row, in storage order.

    `limit` caps how many rows are considered; MAX_EMAILS_PER_RUN caps how
    many jobs this run enqueues. Whichever is hit first ends the run. Errors
    on individual rows are collected, not raised. A storage failure while
    loading the table propagates.
    """
    logger.info("Starting campaign run (limit=%s)", limit)
    stats = CampaignStats()
    store = get_row_store()
    try:
        rows = store.list()
        stats.total_rows = len(rows)
        logger.info("Loaded %d rows from row store", len(rows))

        if limit is not None:
            rows = rows[:limit]

        for row in rows:
            if stats.enqueued >= MAX_EMAILS_PER_RUN:
                logger.warning("Hit max emails per run limit (%d)", MAX_EMAILS_PER_RUN)
                break
            try:
                submitted = _submit(row, stats)
            except Exception as e:
                stats.errors.append(f"Row {row.row_id}: {e}")
                logger.error("Error enqueueing row %d: %s", row.row_id, e)
                continue
            if submitted:
                time.sleep(ENQUEUE_DELAY_SECONDS)
    finally:
        store.close()

    logger.info("Campaign run submitted: %d enqueued, %d skipped, %d errors",
                stats.enqueued, stats.skipped, len(stats.errors))
    return stats


def run_one(row_id: int) -> CampaignStats:
    """Enqueue a single row if it exists and is eligible."""
    stats = CampaignStats(total_rows=1)
    store = get_row_store()
    try:
        row = store.get(row_id)
        if row is None:
            stats.errors.append(f"Row {row_id} not found")
            logger.warning("Row %d not found", row_id)
            return stats
        try:
            _submit(row, stats)
        except Exception as e:
            stats.errors.append(f"Row {row_id}: {e}")
            logger.error("Error enqueueing row %d: %s", row_id, e)
    finally:
        store.close()
    return stats


def _submit(row, stats: CampaignStats) -> bool:
    if not is_eligible(row):
        logger.info("Skipping row %d - PAUSED or IN_TALKS", row.row_id)
        stats.skipped += 1
        return False
    stats.job_ids.append(enqueue_row(row))
    stats.enqueued += 1
    return True
