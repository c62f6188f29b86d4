"""
Centralized configuration — all env vars, column names, queue constants.
"""
import os


def _env_bool(name, default='false'):
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


# ── Logging ──────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_FORMAT = os.getenv('LOG_FORMAT', 'text')

# ── Redis ─────────────────────────────────────────────────────────────────────
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

# ── Row store ─────────────────────────────────────────────────────────────────
DATA_PROVIDER = os.getenv('DATA_PROVIDER', 'csv')  # 'csv' or 'sheets'
CSV_PATH = os.getenv('CSV_PATH', os.path.join('data', 'contacts.csv'))
GOOGLE_SHEETS_ID = os.getenv('GOOGLE_SHEETS_ID', '')
GOOGLE_SERVICE_ACCOUNT_PATH = os.getenv('GOOGLE_SERVICE_ACCOUNT_PATH', '')
GOOGLE_SHEETS_SCOPES = ['https://www.googleapis.com/auth/spreadsheets']

# ── OpenAI ────────────────────────────────────────────────────────────────────
OPENAI_API_KEY = os.getenv('OPENAI_API_KEY')
OPENAI_MODEL = os.getenv('OPENAI_MODEL', 'gpt-4o-mini')
OPENAI_TIMEOUT_SECONDS = float(os.getenv('OPENAI_TIMEOUT_SECONDS', '60'))

# ── YouTube ───────────────────────────────────────────────────────────────────
YOUTUBE_API_KEY = os.getenv('YOUTUBE_API_KEY')
YOUTUBE_API_URL = 'https://www.googleapis.com/youtube/v3'

# ── Resend ────────────────────────────────────────────────────────────────────
RESEND_API_KEY = os.getenv('RESEND_API_KEY')
RESEND_API_URL = 'https://api.resend.com/emails'
RESEND_FROM_EMAIL = os.getenv('RESEND_FROM_EMAIL', 'noreply@replyfan.com')
RESEND_FROM_NAME = os.getenv('RESEND_FROM_NAME', 'ReplyFan')
RESEND_TIMEOUT_SECONDS = float(os.getenv('RESEND_TIMEOUT_SECONDS', '30'))

# ── Auth ─────────────────────────────────────────────────────────────────────
API_KEY = os.getenv('API_KEY')
WEBHOOK_SECRET = os.getenv('WEBHOOK_SECRET')

# ── Bot / campaign ───────────────────────────────────────────────────────────
BOT_NAME = os.getenv('BOT_NAME', 'ReplyFanBot')
CAMPAIGN_CONCURRENCY = int(os.getenv('CAMPAIGN_CONCURRENCY', '5'))
MAX_EMAILS_PER_RUN = int(os.getenv('MAX_EMAILS_PER_RUN', '50'))
ENQUEUE_DELAY_SECONDS = float(os.getenv('ENQUEUE_DELAY_SECONDS', '0.1'))
EMAIL_TEMPLATES_DIR = os.getenv(
    'EMAIL_TEMPLATES_DIR',
    os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'email_templates'),
)
ROW_LEASE_ENABLED = _env_bool('ROW_LEASE_ENABLED')

# ── Contact columns ──────────────────────────────────────────────────────────
COL_NAME = 'name'
COL_NICHE = 'niche'
COL_CHANNEL_LINK = 'yt_link'
COL_FOLLOWERS = 'yt_followers'
COL_WEBSITE = 'website'
COL_EMAIL = 'email_address'
COL_SENT = 'is_sent'
COL_SENT_BY = 'sent_by'
COL_PAUSE = 'pause'
COL_IN_TALKS = 'in_talks'
COL_NOTES = 'notes'

SLOT_PREFIX = '$EMAIL_'
TEMPLATE_PREFIX = 'email_'
CHANNEL_NOT_AVAILABLE = 'N/A'

# ── Queue / worker ───────────────────────────────────────────────────────────
QUEUE_NAME = 'email-campaign'
JOB_ATTEMPTS = 3
BACKOFF_BASE_SECONDS = 2
LOCK_DURATION_SECONDS = 300
MAX_STALLED_COUNT = 3
LIMITER_MAX_STARTS = 10
LIMITER_WINDOW_SECONDS = 60
KEEP_COMPLETED_JOBS = 100
KEEP_FAILED_JOBS = 500
COMPLETED_JOB_TTL = 86400
FAILED_JOB_TTL = 86400 * 7

# ── Research ─────────────────────────────────────────────────────────────────
RESEARCH_CACHE_TTL_SECONDS = 3600
SITE_FETCH_TIMEOUT_SECONDS = 10
MAX_WEBSITE_CONTENT_LENGTH = 5000
RECENT_VIDEO_COUNT = 5
