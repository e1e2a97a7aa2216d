# app.py
"""
Flask Application Factory for the Mailing List Sender

A small web front-end that lets a user pick one of their Mailgun mailing
lists and send it an HTML message with attachments, plus JSON routes for
list management. All list and message operations are delegated to Mailgun.

The factory wires together:
- Class-based configuration with environment overrides
- Console and rotating file logging
- Rate limiting and CORS for the JSON routes
- Per-request Mailgun clients built from request credentials
- JSON error handlers and a health endpoint
"""

import os
import logging
import logging.handlers
from datetime import datetime, timezone
from functools import partial
from typing import Callable, Optional

from flask import Flask, g, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from api.lists import lists_bp
from config.settings import get_config
from core.models import Credentials
from middleware.security import limiter, security_headers
from routes.messages import messages_bp
from services.attachment_store import AttachmentStore
from services.mailgun import MailgunClient, create_mailgun_client
from services.orchestrator import RequestOrchestrator

# Environment variables that override configuration objects
ENV_OVERRIDES = {
    'SECRET_KEY': str,
    'MAILGUN_API_BASE_URL': str,
    'MAILGUN_TIMEOUT': float,
    'UPLOAD_DIR': str,
    'LOG_LEVEL': str,
    'LOG_FILE': str,
    'APP_VERSION': str,
}


def setup_logging(app: Flask) -> None:
    """
    Configure application logging

    Console output always; a rotating file when LOG_FILE is set.
    """
    # Flask's default handler would duplicate root output
    app.logger.handlers.clear()

    log_level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)

    # Module loggers (services.*, core.*) and app.logger all propagate here
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s %(name)s[%(process)d]: %(levelname)s %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    app.logger.setLevel(log_level)

    log_file = app.config.get('LOG_FILE')
    if log_file:
        log_path = os.path.abspath(log_file)
        already_attached = any(
            isinstance(h, logging.handlers.RotatingFileHandler) and h.baseFilename == log_path
            for h in root_logger.handlers
        )
        if not already_attached:
            os.makedirs(os.path.dirname(log_path), exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_path,
                maxBytes=10*1024*1024,  # 10MB
                backupCount=5
            )
            file_handler.setFormatter(logging.Formatter(
                fmt='%(asctime)s %(name)-20s %(levelname)-8s %(funcName)-15s:%(lineno)-4d %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
            file_handler.setLevel(logging.DEBUG)
            root_logger.addHandler(file_handler)

    # Suppress verbose third-party logs outside debug
    if not app.debug:
        logging.getLogger('werkzeug').setLevel(logging.WARNING)
        logging.getLogger('httpx').setLevel(logging.WARNING)
        logging.getLogger('httpcore').setLevel(logging.WARNING)


def configure_orchestrator(app: Flask,
                           client_factory: Optional[Callable[[Credentials], MailgunClient]] = None) -> RequestOrchestrator:
    """
    Build the request orchestrator

    Mailgun clients are never shared: the factory is called once per
    request with that request's credentials.
    """
    if client_factory is None:
        client_factory = partial(
            create_mailgun_client,
            base_url=app.config['MAILGUN_API_BASE_URL'],
            timeout=app.config['MAILGUN_TIMEOUT'],
            page_limit=app.config['MAILGUN_LIST_PAGE_LIMIT'],
        )

    store = AttachmentStore(
        app.config['UPLOAD_DIR'],
        max_file_size=app.config['MAX_ATTACHMENT_SIZE'],
    )
    orchestrator = RequestOrchestrator(
        client_factory,
        store,
        wordwrap=app.config['HTML_TO_TEXT_WORDWRAP'],
    )
    app.extensions['orchestrator'] = orchestrator

    app.logger.info(f"Mailgun API at {app.config['MAILGUN_API_BASE_URL']}, uploads staged in {store.upload_dir}")
    return orchestrator


def configure_security(app: Flask) -> None:
    """Rate limiting for all routes and CORS for the JSON list routes"""
    limiter.init_app(app)

    CORS(app,
         resources={r'/list/*': {'origins': app.config.get('CORS_ORIGINS', [])}},
         allow_headers=['Content-Type'])


def register_blueprints(app: Flask) -> None:
    app.register_blueprint(messages_bp)
    app.register_blueprint(lists_bp)
    app.logger.info("Application blueprints registered")


def configure_error_handlers(app: Flask) -> None:
    """
    Configure JSON error handling so no failure escapes as a traceback
    """
    def _error(name: str, message: str, status_code: int, **extra):
        body = {
            'status': 'Error',
            'error': name,
            'message': message,
            'status_code': status_code,
        }
        body.update(extra)
        return jsonify(body), status_code

    @app.errorhandler(400)
    def bad_request(error):
        app.logger.warning(f"Bad request from {request.remote_addr}: {error}")
        return _error('Bad Request', 'Invalid request format or parameters', 400)

    @app.errorhandler(404)
    def not_found(error):
        return _error('Not Found', 'The requested resource was not found', 404)

    @app.errorhandler(405)
    def method_not_allowed(error):
        return _error('Method Not Allowed', f'{request.method} is not allowed here', 405)

    @app.errorhandler(413)
    def payload_too_large(error):
        app.logger.warning(f"Upload too large from {request.remote_addr}")
        return _error(
            'Payload Too Large',
            f"Uploads are limited to {app.config['MAX_CONTENT_LENGTH']:,} bytes",
            413,
        )

    @app.errorhandler(429)
    def rate_limit_exceeded(error):
        app.logger.warning(f"Rate limit exceeded for {request.remote_addr}")
        return _error(
            'Rate Limit Exceeded',
            'Too many requests. Please try again later.',
            429,
            retry_after=getattr(error, 'retry_after', 60),
        )

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.error(f"Internal server error: {error}", exc_info=True)
        return _error('Internal Server Error', 'An unexpected error occurred', 500)

    @app.errorhandler(Exception)
    def handle_exception(e):
        """Handle unexpected exceptions"""
        if isinstance(e, HTTPException):
            return e

        app.logger.error(f"Unhandled exception: {e}", exc_info=True)
        return _error('Internal Server Error', 'An unexpected error occurred', 500)


def configure_health_checks(app: Flask) -> None:
    @app.route('/health')
    @limiter.exempt
    def health_check():
        """Basic health check endpoint"""
        return jsonify({
            'status': 'healthy',
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'version': app.config.get('APP_VERSION', '1.0.0'),
        })


def configure_request_middleware(app: Flask) -> None:
    @app.before_request
    def before_request():
        g.start_time = datetime.now(timezone.utc)

    @app.after_request
    def after_request(response):
        response = security_headers(response)

        if hasattr(g, 'start_time'):
            duration = (datetime.now(timezone.utc) - g.start_time).total_seconds() * 1000
            if duration > app.config.get('SLOW_REQUEST_THRESHOLD', 1000):
                app.logger.warning(f"Slow request ({duration:.0f}ms): {request.method} {request.path}")

        return response


def create_app(config_name: str = None,
               client_factory: Optional[Callable[[Credentials], MailgunClient]] = None) -> Flask:
    """
    Flask application factory

    Args:
        config_name: Configuration environment ('development', 'testing', 'production')
        client_factory: Builds a Mailgun client from request credentials;
            defaults to create_mailgun_client with configured settings

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__,
                static_folder='static',
                template_folder='templates')

    config_name = config_name or os.environ.get('FLASK_ENV', 'production')
    app.config.from_object(get_config(config_name))

    for key, cast in ENV_OVERRIDES.items():
        if os.environ.get(key):
            app.config[key] = cast(os.environ[key])

    # Behind a reverse proxy in production
    if config_name == 'production':
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    setup_logging(app)
    app.logger.info(f"Starting Mailing List Sender in {config_name} mode")

    configure_orchestrator(app, client_factory)
    configure_security(app)
    register_blueprints(app)
    configure_error_handlers(app)
    configure_health_checks(app)
    configure_request_middleware(app)

    return app


if __name__ == '__main__':
    app = create_app('development')
    app.run(
        host=os.environ.get('HOST', '0.0.0.0'),
        port=int(os.environ.get('PORT', 19081)),
        debug=True,
    )
