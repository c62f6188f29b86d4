"""
Per-row lease — a Redis token that keeps two jobs off the same row at once.

Off by default (ROW_LEASE_ENABLED). Without it two in-flight jobs for one row
can pick the same empty slot and the later write wins.
"""
import logging
import uuid

from campaign_bot.config import LOCK_DURATION_SECONDS
from campaign_bot.errors import RowBusy

logger = logging.getLogger('pipeline.lease')


class RowLease:
    """
    Usage:
        with RowLease(redis_client, row_id):
            ...   # raises RowBusy if another job holds the row
    """

    PREFIX = 'lease:row'

    def __init__(self, redis_client, row_id, ttl_seconds=LOCK_DURATION_SECONDS):
        self.redis = redis_client
        self.row_id = row_id
        self.key = f'{self.PREFIX}:{row_id}'
        self.token = uuid.uuid4().hex
        self.ttl_ms = int(ttl_seconds * 1000)

    def acquire(self) -> bool:
        return bool(self.redis.set(self.key, self.token, nx=True, px=self.ttl_ms))

    def release(self) -> bool:
        """Delete the key only if it still holds our token."""
        current = self.redis.get(self.key)
        if isinstance(current, bytes):
            current = current.decode()
        if current != self.token:
            logger.warning("Lease for row %s expired or was taken over before release", self.row_id)
            return False
        self.redis.delete(self.key)
        return True

    def __enter__(self):
        if not self.acquire():
            raise RowBusy(self.row_id)
        logger.debug("Acquired lease for row %s", self.row_id)
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False
