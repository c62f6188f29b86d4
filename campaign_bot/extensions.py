"""
Shared client instances — Redis (two flavours) and OpenAI.

Redis clients are created with from_url(), which does not connect until the
first command, so importing this module is always safe (even when env vars
are missing during tests).
"""
import logging
import redis

from campaign_bot.config import REDIS_URL, OPENAI_API_KEY, OPENAI_TIMEOUT_SECONDS

logger = logging.getLogger('campaign_bot.extensions')

# ── Redis ─────────────────────────────────────────────────────────────────────
# Text client for breakers, limiter and leases
redis_client = redis.from_url(REDIS_URL, decode_responses=True)

# RQ pickles job payloads and needs raw bytes back
queue_connection = redis.from_url(REDIS_URL)

# ── OpenAI ────────────────────────────────────────────────────────────────────
openai_client = None
if OPENAI_API_KEY:
    try:
        from openai import OpenAI
        openai_client = OpenAI(api_key=OPENAI_API_KEY, timeout=OPENAI_TIMEOUT_SECONDS)
        logger.info("OpenAI client initialized successfully")
    except Exception as e:
        logger.error("Error initializing OpenAI client: %s", e)
else:
    logger.warning("OPENAI_API_KEY not set")
