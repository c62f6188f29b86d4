"""
Rolling-window start limiter shared by every worker process.

Each job start is recorded as a member of a Redis sorted set scored by its
start time. Trimming the window, adding the start and counting the set run in
one MULTI/EXEC, so the count is exact across processes. A start that pushes
the count past `max_starts` is removed again and the caller sleeps until the
oldest admitted start leaves the window.
"""
import logging
import time
import uuid

from campaign_bot.config import LIMITER_MAX_STARTS, LIMITER_WINDOW_SECONDS, QUEUE_NAME

logger = logging.getLogger('pipeline.limiter')

MIN_WAIT_SECONDS = 0.05


class SlidingWindowLimiter:

    def __init__(self, redis_client, key=None, max_starts=LIMITER_MAX_STARTS,
                 window_seconds=LIMITER_WINDOW_SECONDS, clock=time.time, sleep=time.sleep):
        self.redis = redis_client
        self.key = key or f'limiter:{QUEUE_NAME}'
        self.max_starts = max_starts
        self.window_seconds = window_seconds
        self._clock = clock
        self._sleep = sleep

    def try_acquire(self) -> float:
        """Record a start and return 0, or return the seconds to wait before retrying."""
        now = self._clock()
        member = f'{now:.6f}:{uuid.uuid4().hex}'

        pipe = self.redis.pipeline()
        pipe.zremrangebyscore(self.key, '-inf', now - self.window_seconds)
        pipe.zadd(self.key, {member: now})
        pipe.zcard(self.key)
        pipe.expire(self.key, int(self.window_seconds) + 1)
        _, _, count, _ = pipe.execute()

        if count <= self.max_starts:
            return 0.0

        self.redis.zrem(self.key, member)
        oldest = self.redis.zrange(self.key, 0, 0, withscores=True)
        if not oldest:
            return MIN_WAIT_SECONDS
        return max(oldest[0][1] + self.window_seconds - now, MIN_WAIT_SECONDS)

    def acquire(self) -> float:
        """Block until a start is admitted. Returns the total time spent waiting."""
        waited = 0.0
        while True:
            delay = self.try_acquire()
            if delay <= 0:
                return waited
            logger.debug("Start limit reached (%d per %ss), waiting %.2fs",
                         self.max_starts, self.window_seconds, delay)
            self._sleep(delay)
            waited += delay

    def reset(self):
        self.redis.delete(self.key)
