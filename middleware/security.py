# middleware/security.py
"""
Request middleware: security headers and per-request credentials
"""

from flask import current_app, g, jsonify, render_template, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from functools import wraps
import logging

from core.exceptions import InvalidCredentials
from core.models import Credentials
from core.presenter import present_error

logger = logging.getLogger(__name__)

# Limits come from the RATELIMIT_* settings once bound with init_app
limiter = Limiter(key_func=get_remote_address)


def security_headers(response):
    """Add configured security headers to all responses"""
    for header, value in current_app.config.get('SECURITY_HEADERS', {}).items():
        response.headers.setdefault(header, value)
    return response


def request_values() -> dict:
    """Merge query, form and JSON body values; later sources win"""
    values = request.args.to_dict()
    values.update(request.form.to_dict())
    if request.is_json:
        body = request.get_json(silent=True)
        if isinstance(body, dict):
            values.update(body)
    return values


def require_credentials(html_template=None):
    """
    Decorator that parses Mailgun credentials from the request into g

    Rejected requests get a JSON error envelope, or the given template
    rendered with an error view model for HTML routes.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            values = request_values()
            try:
                g.credentials = Credentials.from_values(values)
            except InvalidCredentials as e:
                logger.warning(f"Rejected credentials on {request.endpoint} from {request.remote_addr}: {e.message}")
                if html_template:
                    view = present_error(e, values)
                    return render_template(html_template, **view.to_context()), 400
                return jsonify({'status': 'Error', 'error': e.to_dict()}), 401

            g.form_values = values
            return f(*args, **kwargs)
        return decorated_function
    return decorator
