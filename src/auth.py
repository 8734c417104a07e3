"""Login check for endpoints that act on behalf of a user."""
import hmac
import logging
from functools import wraps

from flask import current_app, jsonify, request, session

logger = logging.getLogger('relay.auth')

API_KEY_HEADER = 'X-API-Key'


def is_authenticated() -> bool:
    """A session login or a configured API key."""
    if session.get('user_id'):
        return True

    presented = request.headers.get(API_KEY_HEADER, '')
    if not presented:
        return False

    settings = current_app.config['RELAY_SETTINGS']
    return any(
        hmac.compare_digest(presented.encode(), key.encode())
        for key in settings.api_keys
    )


def login_required(f):
    """Decorator short-circuiting unauthenticated requests with a 401."""
    @wraps(f)
    def decorated(*args, **kwargs):
        if not is_authenticated():
            client_ip = request.headers.get('X-Forwarded-For', request.remote_addr)
            logger.warning(f"Unauthenticated {request.method} {request.path} [{client_ip}]")
            response = jsonify({'sc': False, 'msg': 'Login required'})
            response.status_code = 401
            return response
        return f(*args, **kwargs)
    return decorated
