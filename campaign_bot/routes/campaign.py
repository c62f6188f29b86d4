"""
Campaign routes — trigger runs, inspect and clear the queue, send a test email.

Triggers return 202 with the enqueue-phase stats; the jobs themselves run in
the worker pool.
"""
import logging

from flask import Blueprint, jsonify, request

from campaign_bot.config import (
    CAMPAIGN_CONCURRENCY, ENQUEUE_DELAY_SECONDS, LIMITER_MAX_STARTS, LIMITER_WINDOW_SECONDS,
    MAX_EMAILS_PER_RUN,
)
from campaign_bot.errors import ConfigurationError, StorageUnavailable
from campaign_bot.pipeline.manager import run_all, run_one
from campaign_bot.pipeline.queue import clear_queue, get_queue_stats
from campaign_bot.services.mailer import send_test_email, validate_recipient

logger = logging.getLogger('routes.campaign')

bp = Blueprint('campaign', __name__)


def _error(message, status):
    return jsonify({'success': False, 'error': message}), status


@bp.route('/api/campaign/trigger', methods=['POST'])
def trigger_campaign():
    data = request.get_json(silent=True) or {}
    max_rows = data.get('max_rows', data.get('maxRows'))
    if max_rows is not None:
        try:
            max_rows = int(max_rows)
        except (TypeError, ValueError):
            return _error('max_rows must be an integer', 400)
        if max_rows < 0:
            return _error('max_rows must be >= 0', 400)

    logger.info("Campaign trigger requested (max_rows=%s)", max_rows)
    try:
        stats = run_all(limit=max_rows)
    except StorageUnavailable as e:
        logger.error("Row store unavailable: %s", e)
        return _error(str(e), 503)
    except ConfigurationError as e:
        return _error(str(e), 500)

    return jsonify({
        'success': True,
        'message': 'Campaign submitted',
        'stats': stats.to_dict(),
    }), 202


@bp.route('/api/campaign/process-row/<row_id>', methods=['POST'])
def process_row(row_id):
    try:
        row_id = int(row_id)
    except ValueError:
        return _error('Invalid row ID', 400)
    if row_id < 1:
        return _error('Invalid row ID', 400)

    logger.info("Processing single row: %d", row_id)
    try:
        stats = run_one(row_id)
    except StorageUnavailable as e:
        logger.error("Row store unavailable: %s", e)
        return _error(str(e), 503)
    except ConfigurationError as e:
        return _error(str(e), 500)

    return jsonify({
        'success': True,
        'message': f'Row {row_id} submitted',
        'stats': stats.to_dict(),
    }), 202


@bp.route('/api/campaign/status')
def campaign_status():
    try:
        queue = get_queue_stats()
    except Exception as e:
        logger.error("Error getting queue status: %s", e)
        return _error(str(e), 500)

    return jsonify({
        'success': True,
        'queue': queue,
        'config': {
            'concurrency': CAMPAIGN_CONCURRENCY,
            'max_emails_per_run': MAX_EMAILS_PER_RUN,
            'enqueue_delay_seconds': ENQUEUE_DELAY_SECONDS,
            'limiter': {'max': LIMITER_MAX_STARTS, 'window_seconds': LIMITER_WINDOW_SECONDS},
        },
    }), 200


@bp.route('/api/campaign/clear-queue', methods=['POST'])
def clear():
    try:
        removed = clear_queue()
    except Exception as e:
        logger.error("Error clearing queue: %s", e)
        return _error(str(e), 500)
    return jsonify({'success': True, 'message': 'Queue cleared', 'removed': removed}), 200


@bp.route('/api/test/email', methods=['POST'])
def test_email():
    data = request.get_json(silent=True) or {}
    to = data.get('to')
    if not to:
        return _error('Email address required', 400)
    if not validate_recipient(to):
        return _error(f'Invalid email address: {to}', 400)

    logger.info("Sending test email to: %s", to)
    try:
        result = send_test_email(to)
    except ConfigurationError as e:
        return _error(str(e), 500)

    sent = result.sent
    return jsonify({
        'success': sent,
        'message': 'Test email sent' if sent else 'Failed to send test email',
        'result': {
            'message_id': result.message_id,
            'status': result.status,
            'timestamp': result.timestamp,
            'error': result.error,
        },
    }), 200 if sent else 502
