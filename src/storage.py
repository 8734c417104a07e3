"""Storage backends for relayed files.

Two variants share one interface, store(data, filename, content_type) ->
public URL. The backend is chosen once at startup by create_storage() and
injected into the relay.
"""
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from config import OBJECT_STORAGE_KEY_PREFIX, UPLOAD_URL_PATH, RelaySettings
from errors import StorageUploadFailed, StorageWriteFailed

logger = logging.getLogger(__name__)


def gen_file_path(filename: str, now: Optional[datetime] = None) -> str:
    """Shard filenames by month: 'abc.png' -> '2026/10/abc.png'."""
    now = now or datetime.now()
    return f"{now:%Y}/{now:%m}/{filename}"


class StorageBackend(ABC):
    """Destination that keeps uploaded bytes and serves them at a public URL."""

    name = 'abstract'

    @abstractmethod
    def store(self, data: bytes, filename: str, content_type: str) -> str:
        """Persist data under filename and return its public URL."""


class LocalStorage(StorageBackend):
    """Filesystem storage under an upload root, served at <base_url>/upload/."""

    name = 'local'

    def __init__(self, upload_dir: str, base_url: str):
        self.upload_dir = Path(upload_dir)
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        self.base_url = base_url.rstrip('/')

        logger.info(f"Local storage initialized with upload_dir: {self.upload_dir}")

    def public_url(self, relative_path: str) -> str:
        return f"{self.base_url}{UPLOAD_URL_PATH}{relative_path}"

    def store(self, data: bytes, filename: str, content_type: str) -> str:
        """Write data atomically to a month-sharded path.

        Raises:
            StorageWriteFailed: The directory or file could not be written.
        """
        relative_path = gen_file_path(filename)
        target = self.upload_dir / relative_path
        tmp_path = None

        try:
            target.parent.mkdir(parents=True, exist_ok=True)

            # Atomic write
            with tempfile.NamedTemporaryFile(mode='wb', delete=False,
                                             dir=target.parent, suffix='.tmp') as tmp:
                tmp_path = tmp.name
                tmp.write(data)

            # NamedTemporaryFile is 0600; hosted files must be world-readable
            os.chmod(tmp_path, 0o644)
            os.replace(tmp_path, target)
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StorageWriteFailed(f"Writing {target} failed: {e}") from e

        logger.debug(f"Stored {len(data)} bytes at {target}")
        return self.public_url(relative_path)


class ObjectStorage(StorageBackend):
    """S3-compatible bucket storage, keys under e/, served from a public domain.

    Uploads are best-effort: a failed put is logged and the public URL is
    returned anyway.
    """

    name = 'object'

    def __init__(self, settings: RelaySettings, client=None):
        self.bucket = settings.object_storage_bucket
        self.domain = (settings.object_storage_domain or '').rstrip('/')

        if client is None:
            client = boto3.client(
                's3',
                endpoint_url=settings.object_storage_endpoint,
                aws_access_key_id=settings.object_storage_access_key,
                aws_secret_access_key=settings.object_storage_secret_key,
                region_name=settings.object_storage_region,
                config=Config(signature_version='s3v4'),
            )
        self._client = client

        logger.info(f"Object storage initialized for bucket: {self.bucket}")

    def public_url(self, key: str) -> str:
        return f"{self.domain}/{key}"

    def store(self, data: bytes, filename: str, content_type: str) -> str:
        key = f"{OBJECT_STORAGE_KEY_PREFIX}{filename}"

        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
            logger.debug(f"Uploaded {len(data)} bytes to {self.bucket}/{key}")
        except (ClientError, BotoCoreError) as e:
            failure = StorageUploadFailed(f"Upload of {key} to bucket {self.bucket} failed: {e}")
            logger.error(str(failure))

        return self.public_url(key)


def create_storage(settings: RelaySettings) -> StorageBackend:
    """Build the backend selected by OBJECT_STORAGE_ENABLED."""
    if settings.object_storage_enabled:
        return ObjectStorage(settings)
    return LocalStorage(settings.upload_dir, settings.base_url)
