"""Shared utility functions for the fetch relay.

This module provides common utilities used across the codebase:
- url: URL pre-filter and SSRF guard
- mime: Content-type to extension mapping and allow-list checks
- constants: Shared scheme and extension tables
"""

from utils.url import SSRFError, is_http_url, check_address, validate_url
from utils.mime import media_type, extension_for, is_allowed
from utils.constants import ALLOWED_URL_SCHEMES, PREFERRED_EXTENSIONS

__all__ = [
    'SSRFError',
    'is_http_url',
    'check_address',
    'validate_url',
    'media_type',
    'extension_for',
    'is_allowed',
    'ALLOWED_URL_SCHEMES',
    'PREFERRED_EXTENSIONS',
]
