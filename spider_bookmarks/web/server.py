"""
Flask application factory for SpiderBookmarks.
Wires configuration, logging, sessions, storage and the route blueprints.
"""

import logging
import traceback
from datetime import timedelta
from typing import Dict, Any, Optional

from cachelib import SimpleCache
from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_session import Session
from werkzeug.exceptions import HTTPException

from ..config.config import Config
from ..core.chat import OllamaChat, PromptManager
from ..database.storage import Storage, SQLStorage, create_storage
from .auth_routes import auth_bp
from .api_routes import api_bp

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)


def create_app(overrides: Optional[Dict[str, Any]] = None,
               storage: Optional[Storage] = None,
               chat_engine=None) -> Flask:
    """
    Build the application.

    ``overrides`` replaces any Config setting. ``storage`` and ``chat_engine``
    may be injected; otherwise they are built from the settings.
    """
    settings = Config.as_dict()
    if overrides:
        settings.update(overrides)
    summary = Config.validate(settings)

    configure_logging(settings['LOG_LEVEL'])

    app = Flask(__name__)
    app.config.update(settings)
    app.config.update(
        SECRET_KEY=settings['SESSION_SECRET'],
        SESSION_TYPE='cachelib',
        SESSION_PERMANENT=True,
        PERMANENT_SESSION_LIFETIME=timedelta(days=settings['SESSION_LIFETIME_DAYS']),
        SESSION_COOKIE_HTTPONLY=True,
        # Cookies must also work over plain http in development
        SESSION_COOKIE_SECURE=False,
        SESSION_COOKIE_SAMESITE='Lax',
    )
    if 'SESSION_CACHELIB' not in app.config:
        app.config['SESSION_CACHELIB'] = SimpleCache(
            threshold=10000,
            default_timeout=int(app.config['PERMANENT_SESSION_LIFETIME'].total_seconds()),
        )

    Session(app)
    CORS(app, supports_credentials=True, resources={
        r"/api/*": {
            "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type"]
        }
    })

    app.extensions['storage'] = storage if storage is not None else create_storage(settings)
    app.extensions['chat_engine'] = chat_engine if chat_engine is not None else OllamaChat(
        base_url=settings['OLLAMA_URL'],
        timeout=settings['OLLAMA_TIMEOUT'],
    )
    app.extensions['prompt_manager'] = PromptManager()

    app.register_blueprint(auth_bp)
    app.register_blueprint(api_bp)
    register_error_handlers(app)
    register_health_check(app)

    logger.info(f"SpiderBookmarks app created: {summary}")
    return app


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        """Return JSON instead of HTML for HTTP errors"""
        if e.code == 404:
            logger.warning(f"404 Not Found: {request.path}")
        return jsonify({'message': e.description}), e.code

    @app.errorhandler(Exception)
    def handle_exception(e):
        """Handle all unhandled exceptions"""
        logger.error(f"Unhandled exception: {e}")
        logger.error(traceback.format_exc())
        return jsonify({
            'message': 'Internal server error',
            'type': e.__class__.__name__
        }), 500


def register_health_check(app: Flask) -> None:
    @app.route('/health')
    def health():
        storage = app.extensions['storage']
        status = {'status': 'ok', 'storage': app.config['STORAGE_BACKEND']}
        if isinstance(storage, SQLStorage):
            try:
                storage.db.check_connection()
            except Exception as e:
                logger.error(f"Health check database error: {e}")
                return jsonify({'status': 'error', 'storage': 'sql', 'message': str(e)}), 503
        return jsonify(status)
