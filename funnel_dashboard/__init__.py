"""
Funnel Dashboard
Flask application factory
"""
import os
import logging
from flask import Flask
from flask_cors import CORS

from .extensions import db, compress
from .config import get_config, validate_config
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app(config_name: str = None) -> Flask:
    """
    Application factory for creating Flask app instances.

    Args:
        config_name: Configuration environment (development, production, testing)

    Returns:
        Configured Flask application
    """
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    # Setup logging before anything else
    setup_logging()

    validate_config(config_name)

    app = Flask(__name__)
    app.config.from_object(get_config(config_name))

    # Initialize extensions
    db.init_app(app)

    compress.init_app(app)
    app.config['COMPRESS_MIMETYPES'] = [
        'text/html', 'text/css', 'text/csv', 'application/json'
    ]
    app.config['COMPRESS_LEVEL'] = 6
    app.config['COMPRESS_MIN_SIZE'] = 500  # Only compress responses > 500 bytes

    # Read-only API: GET from configured frontend origins
    CORS(app, origins=app.config['CORS_ORIGINS'], methods=['GET'])

    # Register blueprints
    register_blueprints(app)

    # Register CLI commands
    from .commands import init_app as init_commands
    init_commands(app)

    # Register error handlers
    register_error_handlers(app)

    # Health check endpoint
    @app.route('/health')
    def health_check():
        return {'status': 'healthy', 'service': 'funnel-dashboard'}

    # Dashboard page
    @app.route('/')
    def index():
        from .api.dashboard import render_dashboard_page
        return render_dashboard_page()

    logger.info('Funnel dashboard created (%s, %d routes)', config_name, len(list(app.url_map.iter_rules())))
    return app


def register_blueprints(app: Flask) -> None:
    """Register all API blueprints."""
    from .api.analytics import analytics_bp
    from .api.codes import codes_bp
    from .api.events import events_bp
    from .api.dashboard import dashboard_bp

    # Aggregates
    app.register_blueprint(analytics_bp, url_prefix='/api')

    # Discount / referral listings
    app.register_blueprint(codes_bp, url_prefix='/api')

    # Enriched funnel events
    app.register_blueprint(events_bp, url_prefix='/api')

    # Dashboard JSON + CSV export
    app.register_blueprint(dashboard_bp, url_prefix='/api/dashboard')


def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""

    @app.errorhandler(400)
    def bad_request(error):
        return {'error': 'Bad request', 'message': str(error)}, 400

    @app.errorhandler(404)
    def not_found(error):
        return {'error': 'Not found', 'message': str(error)}, 404

    @app.errorhandler(500)
    def internal_error(error):
        return {'error': 'Internal server error', 'message': str(error)}, 500
