"""Centralized configuration.

Constants live at module level for easy tuning. Deployment settings are read
from the environment once at startup into a RelaySettings instance, which is
then passed to everything that needs it.
"""
import ipaddress
import os
from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Tuple, Union

# ============================================================
# Outbound Fetch
# ============================================================
USER_AGENT_BOT = 'Mozilla/5.0 (compatible; FetchRelayBot/1.0)'
FETCH_TIMEOUT = 30.0                    # Seconds, connect and read
FETCH_MAX_BYTES = 10 * 1024 * 1024      # 10MB
FETCH_MAX_REDIRECTS = 5                 # Hops, each re-validated
FETCH_CHUNK_SIZE = 8192

# ============================================================
# Uploads
# ============================================================
DEFAULT_UPLOAD_SUFFIX = 'jpg,jpeg,png,gif,bmp,webp,svg,ico,mp3,mp4,webm,txt,pdf,zip'
DEFAULT_UPLOAD_DIR = '/app/data/upload'
DEFAULT_BASE_URL = 'http://localhost:8000'
DEFAULT_CORS_ORIGINS = 'http://localhost:5173,http://localhost:3000,http://localhost:8080'
OBJECT_STORAGE_KEY_PREFIX = 'e/'        # Bucket key prefix for fetched files
UPLOAD_URL_PATH = '/upload/'            # Public path for locally stored files

_TRUE_VALUES = frozenset({'1', 'true', 'yes', 'on'})


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_list(name: str, default: str = '') -> Tuple[str, ...]:
    raw = os.environ.get(name, default)
    return tuple(item.strip() for item in raw.split(',') if item.strip())


@dataclass(frozen=True)
class RelaySettings:
    """Process-wide settings, read-only after startup."""

    secret_key: str = 'change-me'
    api_keys: Tuple[str, ...] = ()
    base_url: str = DEFAULT_BASE_URL
    cors_origins: Tuple[str, ...] = tuple(DEFAULT_CORS_ORIGINS.split(','))
    upload_dir: str = DEFAULT_UPLOAD_DIR
    upload_suffixes: Tuple[str, ...] = tuple(DEFAULT_UPLOAD_SUFFIX.split(','))

    object_storage_enabled: bool = False
    object_storage_access_key: Optional[str] = None
    object_storage_secret_key: Optional[str] = None
    object_storage_bucket: Optional[str] = None
    object_storage_domain: Optional[str] = None
    object_storage_endpoint: Optional[str] = None  # None = AWS S3
    object_storage_region: Optional[str] = None

    fetch_timeout: float = FETCH_TIMEOUT
    fetch_max_bytes: int = FETCH_MAX_BYTES
    fetch_max_redirects: int = FETCH_MAX_REDIRECTS
    blocked_networks: Tuple[Union[ipaddress.IPv4Network, ipaddress.IPv6Network], ...] = ()
    allowed_ports: FrozenSet[int] = field(default_factory=frozenset)

    @classmethod
    def from_env(cls) -> 'RelaySettings':
        """Build settings from environment variables.

        Raises:
            ValueError: If a numeric or CIDR value cannot be parsed, or object
                storage is enabled without its credentials.
        """
        settings = cls(
            secret_key=os.environ.get('SECRET_KEY', 'change-me'),
            api_keys=_env_list('API_KEYS'),
            base_url=os.environ.get('BASE_URL', DEFAULT_BASE_URL).rstrip('/'),
            cors_origins=_env_list('CORS_ORIGINS', DEFAULT_CORS_ORIGINS),
            upload_dir=os.environ.get('UPLOAD_DIR', DEFAULT_UPLOAD_DIR),
            upload_suffixes=_env_list('UPLOAD_SUFFIX', DEFAULT_UPLOAD_SUFFIX),
            object_storage_enabled=_env_bool('OBJECT_STORAGE_ENABLED'),
            object_storage_access_key=os.environ.get('OBJECT_STORAGE_ACCESS_KEY'),
            object_storage_secret_key=os.environ.get('OBJECT_STORAGE_SECRET_KEY'),
            object_storage_bucket=os.environ.get('OBJECT_STORAGE_BUCKET'),
            object_storage_domain=(os.environ.get('OBJECT_STORAGE_DOMAIN') or '').rstrip('/') or None,
            object_storage_endpoint=os.environ.get('OBJECT_STORAGE_ENDPOINT') or None,
            object_storage_region=os.environ.get('OBJECT_STORAGE_REGION') or None,
            fetch_timeout=float(os.environ.get('FETCH_TIMEOUT', FETCH_TIMEOUT)),
            fetch_max_bytes=int(os.environ.get('FETCH_MAX_BYTES', FETCH_MAX_BYTES)),
            fetch_max_redirects=int(os.environ.get('FETCH_MAX_REDIRECTS', FETCH_MAX_REDIRECTS)),
            blocked_networks=tuple(
                ipaddress.ip_network(cidr, strict=False)
                for cidr in _env_list('FETCH_BLOCKED_NETWORKS')
            ),
            allowed_ports=frozenset(int(port) for port in _env_list('FETCH_ALLOWED_PORTS')),
        )
        settings.check()
        return settings

    def check(self) -> None:
        """Reject combinations that cannot serve a single request."""
        if self.object_storage_enabled:
            missing = [
                name for name, value in (
                    ('OBJECT_STORAGE_ACCESS_KEY', self.object_storage_access_key),
                    ('OBJECT_STORAGE_SECRET_KEY', self.object_storage_secret_key),
                    ('OBJECT_STORAGE_BUCKET', self.object_storage_bucket),
                    ('OBJECT_STORAGE_DOMAIN', self.object_storage_domain),
                ) if not value
            ]
            if missing:
                raise ValueError(f"Object storage enabled but not configured: {', '.join(missing)}")
        if self.fetch_timeout <= 0:
            raise ValueError(f"FETCH_TIMEOUT must be positive, got {self.fetch_timeout}")
        if self.fetch_max_bytes <= 0:
            raise ValueError(f"FETCH_MAX_BYTES must be positive, got {self.fetch_max_bytes}")
        if self.fetch_max_redirects < 0:
            raise ValueError(f"FETCH_MAX_REDIRECTS must not be negative, got {self.fetch_max_redirects}")
