"""Outbound HTTP fetch for the relay.

One logical GET per call. Redirects are never followed by requests itself:
each Location is resolved and passed through the SSRF guard before the next
hop is requested, so a public URL cannot bounce the fetch onto an internal
address.

requests resolves the hostname again when it connects, so the address the
socket actually reached is checked too, before a redirect is followed or a
byte of the body is read.
"""
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin

import requests

from config import USER_AGENT_BOT, FETCH_CHUNK_SIZE, RelaySettings
from errors import FetchFailed
from utils.url import SSRFError, check_address, validate_url

logger = logging.getLogger(__name__)


@dataclass
class FetchedContent:
    """Body and declared type of a successful (HTTP 200) fetch."""
    data: bytes
    content_type: str
    final_url: str


def peer_address(response) -> Optional[str]:
    """IP address of the server a streamed response is connected to."""
    connection = getattr(response.raw, '_connection', None)
    sock = getattr(connection, 'sock', None)
    if sock is None:
        return None
    try:
        return sock.getpeername()[0]
    except OSError:
        return None


class RemoteFetcher:
    """Fetches remote files with a bot user-agent, timeout, and size cap."""

    def __init__(self, settings: RelaySettings):
        self.timeout = settings.fetch_timeout
        self.max_bytes = settings.fetch_max_bytes
        self.max_redirects = settings.fetch_max_redirects
        self.blocked_networks = settings.blocked_networks
        self.allowed_ports = settings.allowed_ports
        self.headers = {
            'User-Agent': USER_AGENT_BOT,
            'Accept': '*/*',
        }

    def fetch(self, url: str) -> FetchedContent:
        """GET url and return its body.

        The caller is expected to have run url itself through validate_url;
        every redirect target is validated here.

        Raises:
            SSRFError: A redirect points at an internal address, or the
                connection landed on one.
            FetchFailed: Network error, timeout, too many redirects, malformed
                Location, non-200 status, or body larger than the configured
                limit.
        """
        current_url = url

        for hop in range(self.max_redirects + 1):
            if hop:
                validate_url(current_url, self.blocked_networks, self.allowed_ports)

            try:
                with requests.get(current_url, headers=self.headers, timeout=self.timeout,
                                  stream=True, allow_redirects=False) as response:
                    self._check_peer(response, current_url)

                    if response.is_redirect:
                        location = response.headers['Location']
                        logger.debug(f"Redirect {response.status_code} {current_url} -> {location}")
                        try:
                            current_url = urljoin(current_url, location)
                        except ValueError as e:
                            raise FetchFailed(f"Malformed redirect {location!r} from {current_url}: {e}") from e
                        continue

                    if response.status_code != 200:
                        raise FetchFailed(f"HTTP {response.status_code} from {current_url}")

                    content_type = response.headers.get('Content-Type', '')
                    data = self._read_body(response, current_url)
            except requests.RequestException as e:
                raise FetchFailed(f"Request to {current_url} failed: {e}") from e

            logger.debug(f"Fetched {len(data)} bytes ({content_type}) from {current_url}")
            return FetchedContent(data=data, content_type=content_type, final_url=current_url)

        raise FetchFailed(f"Too many redirects (>{self.max_redirects}) from {url}")

    def _check_peer(self, response: requests.Response, url: str) -> None:
        ip_str = peer_address(response)
        if ip_str is None:
            raise SSRFError(f"Cannot verify connected address for {url}")

        reason = check_address(ip_str, self.blocked_networks)
        if reason:
            logger.warning(f"Connection for {url} landed on {reason} address {ip_str}")
            raise SSRFError(f"Blocked {reason} IP: {ip_str}")

    def _read_body(self, response: requests.Response, url: str) -> bytes:
        declared = response.headers.get('Content-Length')
        if declared and declared.isdigit() and int(declared) > self.max_bytes:
            raise FetchFailed(f"Content-Length {declared} exceeds {self.max_bytes} bytes: {url}")

        body = bytearray()
        for chunk in response.iter_content(chunk_size=FETCH_CHUNK_SIZE):
            body.extend(chunk)
            if len(body) > self.max_bytes:
                raise FetchFailed(f"Body exceeds {self.max_bytes} bytes: {url}")
        return bytes(body)
