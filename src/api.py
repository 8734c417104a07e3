"""REST API for the fetch relay."""
import logging
import time
from functools import wraps

from flask import Blueprint, current_app, jsonify, request

from auth import login_required
from errors import FetchFailed, FetchRelayError, StorageWriteFailed

logger = logging.getLogger('relay.api')

# Failures worth a traceback: they usually chain an OS or network cause
TRACED_ERRORS = (FetchFailed, StorageWriteFailed)

api = Blueprint('api', __name__)


def get_relay():
    """Get the relay built at startup."""
    return current_app.extensions['fetch_relay']


def log_request(f):
    """Decorator to log API requests with detailed info (IP, user-agent, response time)."""
    @wraps(f)
    def decorated(*args, **kwargs):
        start_time = time.time()
        client_ip = request.headers.get('X-Forwarded-For', request.remote_addr)
        user_agent = request.headers.get('User-Agent', 'Unknown')[:100]

        try:
            result = f(*args, **kwargs)
            elapsed = (time.time() - start_time) * 1000  # ms
            status = result.status_code if hasattr(result, 'status_code') else 200
            logger.info(f"{request.method} {request.path} {status} {elapsed:.0f}ms [{client_ip}] [{user_agent}]")
            return result
        except Exception as e:
            elapsed = (time.time() - start_time) * 1000
            logger.error(f"{request.method} {request.path} ERROR {elapsed:.0f}ms [{client_ip}] - {e}")
            raise
    return decorated


def json_response(data, status=200):
    """Create JSON response with proper headers."""
    response = jsonify(data)
    response.status_code = status
    return response


def success_response(data=None):
    """Positive envelope: {'sc': true, ...data}."""
    payload = {'sc': True}
    if data:
        payload.update(data)
    return json_response(payload)


def failure_response():
    """Negative envelope. Carries no detail about the cause."""
    return json_response({'sc': False})


# ========== Fetch Upload ==========

@api.route('/fetch-upload', methods=['POST'])
@log_request
@login_required
def fetch_upload():
    """Fetch the remote file at body['url'] and re-host it."""
    data = request.get_json(silent=True)
    original_url = data.get('url') if isinstance(data, dict) else None

    try:
        result = get_relay().relay(original_url)
    except FetchRelayError as e:
        logger.error(f"Fetch file [url={original_url}] failed: {type(e).__name__}: {e}",
                     exc_info=isinstance(e, TRACED_ERRORS))
        return failure_response()

    return success_response(result.to_dict())


# ========== System ==========

@api.route('/health', methods=['GET'])
def health():
    """Liveness plus the active storage backend."""
    from version import __version__

    return json_response({
        'status': 'ok',
        'version': __version__,
        'storage': get_relay().storage.name,
    })
