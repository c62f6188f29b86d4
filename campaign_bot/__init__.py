"""
Flask application factory.

Creates and configures the Flask app, registers all blueprints.
"""
import hmac
import logging

from flask import Flask, jsonify, request

logger = logging.getLogger('campaign_bot')


def create_app():
    """Create and configure the Flask application."""
    from campaign_bot.logging_config import configure_logging

    app = Flask(__name__)

    configure_logging()

    # ── API key auth ────────────────────────────────────────────────────
    from campaign_bot import config

    @app.before_request
    def require_api_key():
        if not request.path.startswith('/api/'):
            return
        if not config.API_KEY:
            return  # No key set: open access (local dev)
        provided = request.headers.get('X-API-Key')
        if not provided:
            logger.warning("API request without API key: %s", request.path)
            return jsonify({
                'success': False,
                'error': 'Unauthorized',
                'message': 'API key required. Include X-API-Key header.',
            }), 401
        if not hmac.compare_digest(provided.encode(), config.API_KEY.encode()):
            logger.warning("API request with invalid key: %s", request.path)
            return jsonify({'success': False, 'error': 'Forbidden', 'message': 'Invalid API key'}), 403

    # Register blueprints
    from campaign_bot.routes.health import bp as health_bp
    from campaign_bot.routes.campaign import bp as campaign_bp
    from campaign_bot.routes.webhook import bp as webhook_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(campaign_bp)
    app.register_blueprint(webhook_bp)

    # Initialize circuit breakers for external API services
    from campaign_bot.extensions import redis_client
    from campaign_bot.services.circuit_breaker import init_breakers
    init_breakers(redis_client)

    return app
