"""
Redis-backed circuit breakers for the outreach collaborators.

One breaker per external API (OpenAI, YouTube, Resend, Google Sheets). State
lives in Redis so the web process and every worker process share it:
  - CLOSED    → calls pass through
  - OPEN      → too many consecutive failures, calls raise CircuitOpenError
  - HALF_OPEN → reset_timeout elapsed since the last failure, one probe allowed

Health counters are kept in a Redis hash and surfaced by GET /api/health.
"""
import logging
import time
from functools import wraps

logger = logging.getLogger('services.circuit_breaker')

CLOSED = 'closed'
OPEN = 'open'
HALF_OPEN = 'half_open'


class CircuitOpenError(Exception):
    """Raised when calling through an open circuit breaker."""
    def __init__(self, name, retry_after=None):
        self.name = name
        self.retry_after = retry_after
        super().__init__(f"Circuit breaker '{name}' is OPEN — service unavailable")


class CircuitBreaker:
    """
    Usage:
        cb = CircuitBreaker('resend', redis_client, failure_threshold=3, reset_timeout=120)
        result = cb.call(requests.post, url, json=payload)

    Or as a decorator:
        @cb.protect
        def send(...): ...

    Redis being unreachable never blocks a call: the breaker reads as CLOSED.
    """

    PREFIX = 'cb'

    def __init__(self, name, redis_client, failure_threshold=3, reset_timeout=300, clock=time.time):
        self.name = name
        self.redis = redis_client
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self._clock = clock

    def _key(self, suffix):
        return f'{self.PREFIX}:{self.name}:{suffix}'

    @property
    def _state_key(self):
        return self._key('state')

    @property
    def _failures_key(self):
        return self._key('failures')

    @property
    def _last_failure_key(self):
        return self._key('last_failure')

    @property
    def _health_key(self):
        return self._key('health')

    # ── State ─────────────────────────────────────────────────────────

    @property
    def state(self):
        try:
            current = self.redis.get(self._state_key) or CLOSED
            if current == OPEN and self._seconds_since_failure() > self.reset_timeout:
                self.redis.set(self._state_key, HALF_OPEN)
                return HALF_OPEN
            return current
        except Exception:
            return CLOSED

    @property
    def failure_count(self):
        try:
            return int(self.redis.get(self._failures_key) or 0)
        except Exception:
            return 0

    def _seconds_since_failure(self):
        last = self.redis.get(self._last_failure_key)
        if not last:
            return float('inf')
        return self._clock() - float(last)

    # ── Calls ─────────────────────────────────────────────────────────

    def call(self, func, *args, **kwargs):
        """Execute func through the breaker, re-raising its exceptions."""
        if self.state == OPEN:
            retry_after = None
            try:
                retry_after = max(0.0, self.reset_timeout - self._seconds_since_failure())
            except Exception:
                pass
            raise CircuitOpenError(self.name, retry_after=retry_after)

        try:
            result = func(*args, **kwargs)
        except Exception as e:
            self._on_failure(e)
            raise
        self._on_success()
        return result

    def protect(self, func):
        """Decorator form of call()."""
        @wraps(func)
        def wrapper(*args, **kwargs):
            return self.call(func, *args, **kwargs)
        return wrapper

    def _on_success(self):
        try:
            pipe = self.redis.pipeline()
            pipe.set(self._state_key, CLOSED)
            pipe.set(self._failures_key, 0)
            pipe.hincrby(self._health_key, 'success', 1)
            pipe.hset(self._health_key, 'last_success', str(self._clock()))
            pipe.execute()
        except Exception:
            logger.debug("Circuit '%s' could not record success", self.name)

    def _on_failure(self, error):
        try:
            count = self.redis.incr(self._failures_key)
            self.redis.set(self._last_failure_key, str(self._clock()))
            if count >= self.failure_threshold:
                self.redis.set(self._state_key, OPEN)
                logger.warning("Circuit '%s' OPENED after %d failures: %s", self.name, count, error)
            else:
                logger.info("Circuit '%s' failure %d/%d: %s", self.name, count, self.failure_threshold, error)

            pipe = self.redis.pipeline()
            pipe.hincrby(self._health_key, 'failure', 1)
            pipe.hset(self._health_key, 'last_failure', str(self._clock()))
            pipe.hset(self._health_key, 'last_error', str(error)[:200])
            pipe.execute()
        except Exception:
            logger.debug("Circuit '%s' could not record failure", self.name)

    def reset(self):
        """Manually close the breaker."""
        try:
            pipe = self.redis.pipeline()
            pipe.set(self._state_key, CLOSED)
            pipe.set(self._failures_key, 0)
            pipe.delete(self._last_failure_key)
            pipe.execute()
            logger.info("Circuit '%s' manually reset to CLOSED", self.name)
        except Exception as e:
            logger.error("Failed to reset circuit '%s': %s", self.name, e)

    # ── Health ────────────────────────────────────────────────────────

    def get_health(self):
        health = {
            'name': self.name,
            'state': 'unknown',
            'failure_count': 0,
            'failure_threshold': self.failure_threshold,
            'reset_timeout': self.reset_timeout,
            'total_success': 0,
            'total_failure': 0,
            'last_success': None,
            'last_failure': None,
            'last_error': '',
        }
        try:
            data = self.redis.hgetall(self._health_key)
        except Exception:
            return health
        health.update({
            'state': self.state,
            'failure_count': self.failure_count,
            'total_success': int(data.get('success', 0)),
            'total_failure': int(data.get('failure', 0)),
            'last_success': float(data['last_success']) if data.get('last_success') else None,
            'last_failure': float(data['last_failure']) if data.get('last_failure') else None,
            'last_error': data.get('last_error', ''),
        })
        return health


# ── Registry ──────────────────────────────────────────────────────────────

_registry = {}

# name → (failure_threshold, reset_timeout)
BREAKER_SETTINGS = {
    'openai': (5, 60),
    'youtube': (3, 300),
    'resend': (3, 120),
    'google_sheets': (5, 60),
}


def get_breaker(name, redis_client=None, **kwargs):
    """Get or create a named circuit breaker (singleton per name)."""
    if name not in _registry:
        if redis_client is None:
            from campaign_bot.extensions import redis_client as rc
            redis_client = rc
        threshold, timeout = BREAKER_SETTINGS.get(name, (3, 300))
        kwargs.setdefault('failure_threshold', threshold)
        kwargs.setdefault('reset_timeout', timeout)
        _registry[name] = CircuitBreaker(name, redis_client, **kwargs)
    return _registry[name]


def get_all_breakers():
    return dict(_registry)


def init_breakers(redis_client):
    """(Re)create the standard breakers on the given Redis client."""
    for name, (threshold, timeout) in BREAKER_SETTINGS.items():
        _registry[name] = CircuitBreaker(
            name, redis_client, failure_threshold=threshold, reset_timeout=timeout,
        )
    return dict(_registry)
