"""Main Flask web server for the fetch relay."""
import json as _json
import logging
import os
import sys

from flask import Flask, abort, send_from_directory
from flask_cors import CORS

# Configure structured logging
_logging_configured = False


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging.

    Outputs logs as JSON objects for easier parsing by log aggregators
    like Loki, Elasticsearch, or CloudWatch.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record, self.datefmt),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        # Add exception info if present
        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return _json.dumps(log_data)


def setup_logging():
    """Configure application logging.

    Environment variables:
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR). Default: INFO
        LOG_FORMAT: Log output format ('text' or 'json'). Default: text
    """
    global _logging_configured
    if _logging_configured:
        return
    _logging_configured = True

    log_level = os.environ.get('LOG_LEVEL', 'INFO').upper()
    log_format = os.environ.get('LOG_FORMAT', 'text').lower()

    if log_format == 'json':
        formatter = JSONFormatter(datefmt='%Y-%m-%dT%H:%M:%S')
    else:
        formatter = logging.Formatter(
            '[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    # Console handler only - Docker captures stdout for logging
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)

    # Clear existing handlers first to prevent duplicates
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(getattr(logging, log_level, logging.INFO))
    root.addHandler(console_handler)

    logging.getLogger('werkzeug').setLevel(logging.INFO)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('botocore').setLevel(logging.WARNING)


logger = logging.getLogger('relay.app')


def create_app(settings=None, storage=None) -> Flask:
    """Build the Flask app.

    Settings are read from the environment unless given, and the storage
    backend is chosen from them unless given. Both are fixed for the life
    of the process.

    Run under gunicorn with ``gunicorn 'main:create_app()'``.
    """
    from api import api as api_blueprint
    from config import RelaySettings
    from fetch_relay import FetchRelay
    from storage import LocalStorage, create_storage

    setup_logging()

    if settings is None:
        settings = RelaySettings.from_env()
    if storage is None:
        storage = create_storage(settings)

    app = Flask(__name__)
    app.secret_key = settings.secret_key
    app.config['RELAY_SETTINGS'] = settings
    app.extensions['fetch_relay'] = FetchRelay(settings, storage)

    CORS(app, supports_credentials=True, resources={
        r"/fetch-upload": {
            "origins": list(settings.cors_origins),
            "methods": ["POST", "OPTIONS"],
            "allow_headers": ["Content-Type", "X-API-Key"]
        }
    })

    app.register_blueprint(api_blueprint)

    @app.route('/upload/<path:filename>')
    def serve_upload(filename: str):
        """Serve files written by the local backend."""
        if not isinstance(storage, LocalStorage):
            abort(404)
        return send_from_directory(storage.upload_dir, filename)

    if settings.secret_key == 'change-me':
        logger.warning("SECRET_KEY is not set; sessions are not secure")
    logger.info(f"Fetch relay ready: storage={storage.name} base_url={settings.base_url}")
    return app


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 8000))
    create_app().run(host='0.0.0.0', port=port)
