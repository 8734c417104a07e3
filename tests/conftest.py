"""Shared pytest fixtures for fetch relay tests."""
import os
import sys
import socket
import tempfile
import shutil
from unittest.mock import MagicMock, patch

import pytest
from requests.structures import CaseInsensitiveDict

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from config import RelaySettings

PUBLIC_IP = '93.184.216.34'
BASE_URL = 'http://relay.test'
PNG_BYTES = b'\x89PNG\r\n\x1a\n' + b'\x00' * 64


class FakeResponse:
    """Stand-in for a streamed requests.Response."""

    def __init__(self, status_code=200, body=b'', headers=None, peer=PUBLIC_IP):
        self.status_code = status_code
        self.headers = CaseInsensitiveDict(headers or {})
        self._body = body
        self.closed = False
        # urllib3 response whose connection reports the address it reached
        self.raw = MagicMock()
        if peer is None:
            self.raw._connection = None
        else:
            self.raw._connection.sock.getpeername.return_value = (peer, 80)

    @property
    def is_redirect(self):
        return 'location' in self.headers and self.status_code in (301, 302, 303, 307, 308)

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self._body), chunk_size):
            yield self._body[i:i + chunk_size]

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True
        return False


@pytest.fixture
def temp_dir():
    """Create a temporary directory for uploads."""
    tmpdir = tempfile.mkdtemp(prefix='relay_test_')
    yield tmpdir
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def settings(temp_dir):
    """Local-storage settings rooted in temp_dir."""
    return RelaySettings(
        secret_key='test-secret',
        api_keys=('test-api-key',),
        base_url=BASE_URL,
        upload_dir=temp_dir,
        upload_suffixes=('png', 'jpg', 'gif'),
    )


@pytest.fixture
def dns():
    """Patch DNS resolution. Map hostnames to IPs in the yielded dict.

    Unlisted hosts resolve to a public address.
    """
    table = {}

    def fake_getaddrinfo(host, port, *args, **kwargs):
        ip = table.get(host, PUBLIC_IP)
        if ':' in ip:
            return [(socket.AF_INET6, socket.SOCK_STREAM, 6, '', (ip, port, 0, 0))]
        return [(socket.AF_INET, socket.SOCK_STREAM, 6, '', (ip, port))]

    with patch('utils.url.socket.getaddrinfo', side_effect=fake_getaddrinfo):
        yield table


@pytest.fixture
def make_response():
    """Factory for FakeResponse objects."""
    return FakeResponse


@pytest.fixture
def png_response():
    """A 200 image/png response."""
    return FakeResponse(200, PNG_BYTES, {'Content-Type': 'image/png'})


@pytest.fixture
def http_get():
    """Patch requests.get as used by the fetcher."""
    with patch('fetcher.requests.get') as mock_get:
        yield mock_get


@pytest.fixture
def app(settings):
    """Flask app wired to local storage in temp_dir."""
    from main import create_app

    app = create_app(settings=settings)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def app_client(app):
    """Flask test client with a logged-in session."""
    with app.test_client() as client:
        with client.session_transaction() as sess:
            sess['user_id'] = 'user-1'
        yield client


@pytest.fixture
def anon_client(app):
    """Flask test client without a session."""
    with app.test_client() as client:
        yield client
