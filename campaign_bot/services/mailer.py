"""
Resend delivery wrapper.

send_mail() records delivery failures in the returned DeliveryResult instead
of raising, so the caller can write a FAILED log entry into the slot. Only
missing configuration and an open circuit raise, because in both cases no
send was attempted.
"""
import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import requests

from campaign_bot.config import (
    BOT_NAME, RESEND_API_KEY, RESEND_API_URL, RESEND_FROM_EMAIL, RESEND_FROM_NAME,
    RESEND_TIMEOUT_SECONDS,
)
from campaign_bot.errors import ConfigurationError
from campaign_bot.models.log_entry import STATUS_FAILED, STATUS_SENT
from campaign_bot.services.circuit_breaker import get_breaker

logger = logging.getLogger('services.mailer')

EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')


@dataclass
class DeliveryResult:
    message_id: str
    status: str
    timestamp: str
    error: Optional[str] = None

    @property
    def sent(self):
        return self.status == STATUS_SENT


def utc_timestamp() -> str:
    """ISO-8601 UTC with millisecond precision and a 'Z' suffix."""
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def _millis() -> int:
    return int(time.time() * 1000)


def validate_recipient(address) -> bool:
    if not isinstance(address, str):
        return False
    return bool(EMAIL_RE.match(address.strip()))


def _post(payload: dict):
    resp = requests.post(
        RESEND_API_URL,
        json=payload,
        headers={'Authorization': f'Bearer {RESEND_API_KEY}'},
        timeout=RESEND_TIMEOUT_SECONDS,
    )
    # Only 5xx counts against the breaker; a 4xx concerns this one message
    if resp.status_code >= 500:
        resp.raise_for_status()
    return resp


def _error_message(error: Exception) -> str:
    response = getattr(error, 'response', None)
    if response is not None:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get('message'):
            return f"{response.status_code}: {body['message']}"
    return str(error) or error.__class__.__name__


def send_mail(to: str, subject: str, html: str) -> DeliveryResult:
    if not RESEND_API_KEY:
        raise ConfigurationError('RESEND_API_KEY not configured')

    logger.info("Sending email to %s: %s", to, subject)
    payload = {
        'from': f'{RESEND_FROM_NAME} <{RESEND_FROM_EMAIL}>',
        'to': [to],
        'subject': subject,
        'html': html,
    }
    try:
        resp = get_breaker('resend').call(_post, payload)
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as e:
        error = _error_message(e)
        logger.error("Resend API error for %s: %s", to, error)
        return DeliveryResult(
            message_id=f'error_{_millis()}',
            status=STATUS_FAILED,
            timestamp=utc_timestamp(),
            error=error,
        )

    message_id = data.get('id') or f'msg_{_millis()}'
    logger.info("Email sent successfully. Message ID: %s", message_id)
    return DeliveryResult(message_id=message_id, status=STATUS_SENT, timestamp=utc_timestamp())


def send_test_email(to: str) -> DeliveryResult:
    """Send a fixed message that shows the sender configuration."""
    html = f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: Arial, sans-serif; padding: 20px;">
  <h1 style="color: #0066cc;">Test Email from {BOT_NAME}</h1>
  <p>This is a test email to verify your Resend configuration.</p>
  <p>If you received this email, your email sending is working correctly!</p>
  <p><strong>Configuration:</strong></p>
  <ul>
    <li>From: {RESEND_FROM_NAME} &lt;{RESEND_FROM_EMAIL}&gt;</li>
    <li>Bot Name: {BOT_NAME}</li>
  </ul>
</body>
</html>"""
    return send_mail(to, f'Test Email - {BOT_NAME}', html)
