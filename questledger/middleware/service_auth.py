"""
Service Authentication Middleware.

The rewards API is called by internal collaborators (booking, reviews,
billing), not by browsers. Callers present the shared INTERNAL_API_KEY in
the X-Service-Key header.
"""
import hmac
from functools import wraps
from flask import request, current_app, g

from ..utils.errors import unauthorized, ErrorCode

SERVICE_KEY_HEADER = 'X-Service-Key'


def get_service_key_from_request() -> str | None:
    """Service key from the X-Service-Key header, or a Bearer token."""
    key = request.headers.get(SERVICE_KEY_HEADER)
    if key:
        return key

    auth_header = request.headers.get('Authorization', '')
    if auth_header.startswith('Bearer '):
        return auth_header[7:]

    return None


def require_service_auth(f):
    """
    Decorator to require the internal service key.

    Sets g.service_authenticated. When no INTERNAL_API_KEY is configured
    (development, tests) requests pass through; production refuses to start
    without one.

    Usage:
        @require_service_auth
        def track():
            ...
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected = current_app.config.get('INTERNAL_API_KEY') or ''

        if not expected:
            g.service_authenticated = False
            return f(*args, **kwargs)

        provided = get_service_key_from_request()
        if not provided:
            return unauthorized('Missing service key')

        if not hmac.compare_digest(provided.encode(), expected.encode()):
            return unauthorized('Invalid service key', ErrorCode.INVALID_TOKEN)

        g.service_authenticated = True
        return f(*args, **kwargs)

    return decorated_function
