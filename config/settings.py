# config/settings.py
"""
Configuration objects for the mailing list sender

Loaded by the application factory with app.config.from_object and then
overridden by environment variables.
"""

import os
import secrets
from pathlib import Path


BASE_DIR = Path(__file__).resolve().parent.parent


class BaseConfig:
    """Settings shared by every environment"""

    # Session settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or secrets.token_urlsafe(32)
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    # Mailgun
    MAILGUN_API_BASE_URL = 'https://api.mailgun.net/v3'
    MAILGUN_TIMEOUT = 30.0  # seconds, enforced by the HTTP client only
    MAILGUN_LIST_PAGE_LIMIT = 100

    # Message conversion
    HTML_TO_TEXT_WORDWRAP = 130

    # File uploads
    UPLOAD_DIR = str(BASE_DIR / 'uploads')
    MAX_CONTENT_LENGTH = 25 * 1024 * 1024  # 25MB, Mailgun's message size limit
    MAX_ATTACHMENT_SIZE = 25 * 1024 * 1024

    # Rate limiting
    RATELIMIT_STORAGE_URI = 'memory://'
    RATELIMIT_DEFAULT = '200 per hour'
    RATELIMIT_SEND = '10 per minute'
    RATELIMIT_HEADERS_ENABLED = True

    # CORS for the JSON list management routes
    CORS_ORIGINS = ['http://localhost:3000']

    # Logging
    LOG_LEVEL = 'INFO'
    LOG_FILE = None
    SLOW_REQUEST_THRESHOLD = 1000  # ms

    # Security headers
    SECURITY_HEADERS = {
        'X-Content-Type-Options': 'nosniff',
        'X-Frame-Options': 'DENY',
        'Referrer-Policy': 'strict-origin-when-cross-origin',
        'Content-Security-Policy': "default-src 'self'; style-src 'self' 'unsafe-inline'",
    }


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_LEVEL = 'DEBUG'
    RATELIMIT_ENABLED = False


class TestingConfig(BaseConfig):
    TESTING = True
    SECRET_KEY = 'testing-secret-key'
    RATELIMIT_ENABLED = False
    LOG_LEVEL = 'WARNING'


class ProductionConfig(BaseConfig):
    SESSION_COOKIE_SECURE = True
    SECURITY_HEADERS = {
        **BaseConfig.SECURITY_HEADERS,
        'Strict-Transport-Security': 'max-age=31536000; includeSubDomains',
    }


CONFIGS = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
}


def get_config(config_name: str = None):
    """
    Resolve a configuration class by environment name

    Args:
        config_name: 'development', 'testing' or 'production'

    Returns:
        Configuration class, ProductionConfig for unknown names
    """
    return CONFIGS.get(config_name or 'production', ProductionConfig)
