"""
Logging setup for the web process and the worker pool.

LOG_FORMAT picks "text" (default) or "json"; LOG_LEVEL defaults to INFO.
Records logged from jobs carry `job_id` / `row_id` through `extra=`; both
formats render them when present.
"""
import json
import logging
import os
import sys
from datetime import datetime, timezone

CONTEXT_FIELDS = ('job_id', 'row_id')

# Third-party loggers that are noisy at INFO
_NOISY_LOGGERS = [
    'urllib3',
    'openai',
    'httpcore',
    'httpx',
    'google.auth',
    'gspread',
]


def _context(record):
    return {key: getattr(record, key) for key in CONTEXT_FIELDS if getattr(record, key, None) is not None}


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record):
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        entry.update(_context(record))
        if record.exc_info and record.exc_info[0] is not None:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry)


class TextFormatter(logging.Formatter):
    """'[time] LEVEL logger [job=.. row=..]: message'"""

    def __init__(self):
        super().__init__('[%(asctime)s] %(levelname)s %(name)s%(context)s: %(message)s',
                         datefmt='%Y-%m-%d %H:%M:%S')

    def format(self, record):
        ctx = _context(record)
        short = {'job_id': 'job', 'row_id': 'row'}
        record.context = (' [' + ' '.join(f'{short[k]}={v}' for k, v in ctx.items()) + ']') if ctx else ''
        return super().format(record)


def configure_logging(level=None, log_format=None):
    """
    Reset the root logger to a single stderr handler.

    Arguments override the LOG_LEVEL / LOG_FORMAT environment variables.
    Unknown level names fall back to INFO.
    """
    level_name = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()
    resolved = getattr(logging, level_name, None)
    if not isinstance(resolved, int):
        resolved = logging.INFO

    log_format = (log_format or os.getenv('LOG_FORMAT', 'text')).lower()

    root = logging.getLogger()
    root.setLevel(resolved)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(resolved)
    handler.setFormatter(JSONFormatter() if log_format == 'json' else TextFormatter())
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return root
