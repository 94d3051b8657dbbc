"""
Quest Ledger
Loyalty quest and reward ledger engine - Flask application factory
"""
import os
import re
import logging
from flask import Flask
from flask_cors import CORS
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db, migrate
from .config import get_config, validate_config
from .utils.logging_config import setup_logging
from .utils.cache import init_cache
from .utils.errors import error_response, exception_response, ErrorCode
from .utils.exceptions import QuestLedgerError

logger = logging.getLogger(__name__)


def create_app(config_name: str = None, test_config: dict = None) -> Flask:
    """
    Application factory for creating Flask app instances.

    Args:
        config_name: Configuration environment (development, production, testing)
        test_config: Overrides applied after the config class (tests)

    Returns:
        Configured Flask application
    """
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    validate_config(config_name)

    app = Flask(__name__)
    app.config.from_object(get_config(config_name))
    if test_config:
        app.config.update(test_config)

    # Setup logging before anything else
    setup_logging(app.config.get('LOG_LEVEL'))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Tier table caching (Redis with graceful fallback)
    init_cache(app)

    # Internal callers only; browsers reach this through the web backend
    cors_origins = [
        'http://localhost:3000',
        'http://127.0.0.1:3000',
    ]
    if config_name != 'production':
        cors_origins.append(re.compile(r'http://localhost:\d+'))
    CORS(app, origins=cors_origins, allow_headers=['Content-Type', 'Authorization', 'X-Service-Key'])

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
        try:
            db.session.execute(text('SELECT 1'))
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f'Health check database failure: {e}')
            return {'status': 'unhealthy', 'service': 'questledger', 'database': 'unavailable'}, 503
        return {'status': 'healthy', 'service': 'questledger', 'database': 'ok'}

    return app


def register_blueprints(app: Flask) -> None:
    """Register API blueprints."""
    from .api.quests import quests_bp
    from .api.rewards import rewards_bp
    from .api.membership import membership_bp

    app.register_blueprint(quests_bp, url_prefix='/api/quests')
    app.register_blueprint(rewards_bp, url_prefix='/api/rewards')
    app.register_blueprint(membership_bp, url_prefix='/api/membership')


def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""

    @app.errorhandler(QuestLedgerError)
    def quest_ledger_error(error):
        return exception_response(error)

    @app.errorhandler(400)
    def bad_request(error):
        return error_response('Bad request', ErrorCode.INVALID_REQUEST, 400, log_error=False)

    @app.errorhandler(404)
    def not_found(error):
        return error_response('Not found', ErrorCode.NOT_FOUND, 404, log_error=False)

    @app.errorhandler(405)
    def method_not_allowed(error):
        return error_response('Method not allowed', ErrorCode.INVALID_REQUEST, 405, log_error=False)

    @app.errorhandler(500)
    def internal_error(error):
        return error_response('Internal server error', ErrorCode.INTERNAL_ERROR, 500)
