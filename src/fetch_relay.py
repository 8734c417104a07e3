"""Fetch a remote file server-side and re-host it through a storage backend.

Flow per request: validate -> SSRF guard -> fetch -> classify content type ->
name -> store. Each guard raises a FetchRelayError subclass; nothing is
stored until all of them have passed.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from config import RelaySettings
from errors import InvalidInput, UnsupportedType
from fetcher import RemoteFetcher
from storage import StorageBackend
from utils.mime import extension_for, is_allowed
from utils.url import is_http_url, validate_url

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    url: str
    original_url: str

    def to_dict(self) -> dict:
        return {'url': self.url, 'originalURL': self.original_url}


def generate_filename(ext: str) -> str:
    """Random hex id plus extension, independent of the source URL."""
    return f"{uuid.uuid4().hex}.{ext}"


class FetchRelay:
    """Relays remote files into storage. Stateless between calls."""

    def __init__(self, settings: RelaySettings, storage: StorageBackend,
                 fetcher: Optional[RemoteFetcher] = None):
        self.settings = settings
        self.storage = storage
        self.fetcher = fetcher or RemoteFetcher(settings)

    def relay(self, original_url) -> FetchResult:
        """Fetch original_url and store it.

        Raises:
            InvalidInput: Missing, malformed, or non-HTTP URL.
            SSRFError: The host (or a redirect hop) resolves to an internal address.
            FetchFailed: The fetch did not produce an HTTP 200 body.
            UnsupportedType: The declared content type is not allow-listed.
            StorageWriteFailed: The local backend could not write the file.
        """
        if not is_http_url(original_url):
            raise InvalidInput(f"Not an http(s) URL: {str(original_url)[:200]!r}")

        validate_url(original_url, self.settings.blocked_networks, self.settings.allowed_ports)

        fetched = self.fetcher.fetch(original_url)

        ext = extension_for(fetched.content_type)
        if not is_allowed(ext, self.settings.upload_suffixes):
            raise UnsupportedType(f"Content type {fetched.content_type!r} (suffix {ext!r}) not allowed")

        filename = generate_filename(ext)
        hosted_url = self.storage.store(fetched.data, filename, fetched.content_type)

        logger.info(f"Relayed {original_url} -> {hosted_url} ({len(fetched.data)} bytes, {self.storage.name})")
        return FetchResult(url=hosted_url, original_url=original_url)
