"""
Webhook routes — Resend delivery events.

Events are logged only; the slot log entry already records the send outcome.
When WEBHOOK_SECRET is set the 'resend-signature' header must carry the
hex HMAC-SHA256 of the raw request body.
"""
import hashlib
import hmac
import logging

from flask import Blueprint, jsonify, request

from campaign_bot import config

logger = logging.getLogger('routes.webhook')

bp = Blueprint('webhook', __name__)

# event type → log level
EVENT_LEVELS = {
    'email.sent': logging.INFO,
    'email.delivered': logging.INFO,
    'email.delivery_delayed': logging.WARNING,
    'email.bounced': logging.ERROR,
    'email.complained': logging.WARNING,
    'email.opened': logging.INFO,
    'email.clicked': logging.INFO,
}


def verify_signature(body: bytes, signature: str, secret: str) -> bool:
    expected = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)


@bp.route('/webhook/resend', methods=['POST'])
def resend_webhook():
    if config.WEBHOOK_SECRET:
        signature = request.headers.get('resend-signature')
        if not signature:
            logger.warning("Webhook received without signature")
            return jsonify({'error': 'Missing signature'}), 401
        if not verify_signature(request.get_data(), signature, config.WEBHOOK_SECRET):
            logger.warning("Invalid webhook signature")
            return jsonify({'error': 'Invalid signature'}), 403

    event = request.get_json(silent=True) or {}
    event_type = event.get('type', 'unknown')
    email_id = (event.get('data') or {}).get('email_id')

    level = EVENT_LEVELS.get(event_type)
    if level is None:
        logger.info("Unhandled webhook event type: %s (%s)", event_type, email_id)
    else:
        logger.log(level, "Resend event %s: %s", event_type, email_id)

    return jsonify({'received': True}), 200
