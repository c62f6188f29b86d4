"""Shared test fixtures."""
import csv
import time

import pytest
from unittest.mock import patch

from campaign_bot.models.contact import ContactRow


class FakeRedis:
    """In-memory Redis fake: strings (with NX / PX), hashes and sorted sets."""

    def __init__(self, clock=time.time):
        self._clock = clock
        self.get_store = {}
        self.hash_store = {}
        self.zset_store = {}
        self.expires_at = {}

    def _purge(self, key):
        deadline = self.expires_at.get(key)
        if deadline is not None and deadline <= self._clock():
            self.expires_at.pop(key, None)
            self.get_store.pop(key, None)

    # ── Strings ───────────────────────────────────────────────────────

    def get(self, key):
        self._purge(key)
        return self.get_store.get(key)

    def set(self, key, value, nx=False, px=None, ex=None):
        self._purge(key)
        if nx and key in self.get_store:
            return None
        self.get_store[key] = value if isinstance(value, str) else str(value)
        self.expires_at.pop(key, None)
        if px is not None:
            self.expires_at[key] = self._clock() + px / 1000.0
        elif ex is not None:
            self.expires_at[key] = self._clock() + ex
        return True

    def incr(self, key):
        val = int(self.get(key) or 0) + 1
        self.get_store[key] = str(val)
        return val

    def delete(self, *keys):
        removed = 0
        for k in keys:
            for store in (self.get_store, self.hash_store, self.zset_store):
                if store.pop(k, None) is not None:
                    removed += 1
            self.expires_at.pop(k, None)
        return removed

    def expire(self, key, seconds):
        return True

    # ── Hashes ────────────────────────────────────────────────────────

    def hset(self, key, field, value):
        self.hash_store.setdefault(key, {})[field] = value

    def hincrby(self, key, field, amount):
        h = self.hash_store.setdefault(key, {})
        h[field] = str(int(h.get(field, 0)) + amount)
        return int(h[field])

    def hgetall(self, key):
        return dict(self.hash_store.get(key, {}))

    # ── Sorted sets ───────────────────────────────────────────────────

    def _sorted(self, key):
        zset = self.zset_store.get(key, {})
        return sorted(zset.items(), key=lambda item: (item[1], item[0]))

    def zadd(self, key, mapping):
        zset = self.zset_store.setdefault(key, {})
        added = sum(1 for member in mapping if member not in zset)
        zset.update({member: float(score) for member, score in mapping.items()})
        return added

    def zrem(self, key, *members):
        zset = self.zset_store.get(key, {})
        return sum(1 for m in members if zset.pop(m, None) is not None)

    def zrank(self, key, member):
        for index, (m, _) in enumerate(self._sorted(key)):
            if m == member:
                return index
        return None

    def zrange(self, key, start, end, withscores=False):
        items = self._sorted(key)
        end = len(items) if end == -1 else end + 1
        items = items[start:end]
        if withscores:
            return [(m, s) for m, s in items]
        return [m for m, _ in items]

    def zremrangebyscore(self, key, min_score, max_score):
        low = float(min_score)
        high = float(max_score)
        zset = self.zset_store.get(key, {})
        doomed = [m for m, s in zset.items() if low <= s <= high]
        for m in doomed:
            del zset[m]
        return len(doomed)

    def zcard(self, key):
        return len(self.zset_store.get(key, {}))

    def pipeline(self):
        return FakePipeline(self)


class FakePipeline:
    """Queues any FakeRedis command and runs them in order on execute()."""

    def __init__(self, redis):
        self._redis = redis
        self._ops = []

    def __getattr__(self, name):
        method = getattr(self._redis, name)

        def _queue(*args, **kwargs):
            self._ops.append((method, args, kwargs))
            return self
        return _queue

    def execute(self):
        ops, self._ops = self._ops, []
        return [method(*args, **kwargs) for method, args, kwargs in ops]


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def redis_factory():
    """FakeRedis class, for tests that need their own clock."""
    return FakeRedis


@pytest.fixture(autouse=True)
def breakers(fake_redis):
    """Fresh circuit breakers on the in-memory Redis for every test.

    The shared text client is patched too, so create_app() and lazily built
    breakers never reach a real server.
    """
    from campaign_bot.services.circuit_breaker import _registry, init_breakers
    with patch('campaign_bot.extensions.redis_client', fake_redis):
        init_breakers(fake_redis)
        yield dict(_registry)
    _registry.clear()


@pytest.fixture
def app():
    """Flask test app."""
    from campaign_bot import create_app
    app = create_app()
    app.config['TESTING'] = True
    # Auth tests patch their own key
    with patch('campaign_bot.config.API_KEY', None):
        yield app


@pytest.fixture
def client(app):
    """Flask test client."""
    with app.test_client() as c:
        yield c


CONTACT_HEADERS = [
    'name', 'niche', 'yt_link', 'yt_followers', 'website', 'email_address',
    'is_sent', 'sent_by', 'pause', 'in_talks', '$EMAIL_1', '$EMAIL_2', '$EMAIL_3',
]


@pytest.fixture
def make_row():
    """Factory fixture — builds a ContactRow with every standard column present."""
    def _make(row_id=1, **overrides):
        values = {h: '' for h in CONTACT_HEADERS}
        values.update({
            'name': 'Alex',
            'niche': 'fitness',
            'yt_link': 'N/A',
            'website': 'alexfit.com',
            'email_address': 'a@x.io',
        })
        values.update(overrides)
        return ContactRow(row_id, values)
    return _make


@pytest.fixture
def write_csv(tmp_path):
    """Factory fixture — writes rows (lists of cells) under CONTACT_HEADERS and returns the path."""
    def _write(rows, headers=None, name='contacts.csv'):
        path = tmp_path / name
        with open(path, 'w', newline='', encoding='utf-8') as fh:
            writer = csv.writer(fh)
            writer.writerow(headers or CONTACT_HEADERS)
            writer.writerows(rows)
        return str(path)
    return _write
