"""Object storage for processed videos.

Supports S3 (and S3-compatible stores such as MinIO) for production and the
local filesystem for development. Objects are read publicly through a
distribution host, so URLs are always ``https://<cdn_domain>/<key>``.
"""

import logging
import os
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from tubely.core.config import settings
from tubely.core.errors import UploadFailedError

logger = logging.getLogger(__name__)


def derive_storage_key(orientation: str, video_id: str) -> str:
    """Build the object key for a processed video.

    Re-uploading the same video under the same orientation overwrites the
    previous object.
    """
    return f"{orientation}/{video_id}.mp4"


@dataclass
class StorageResult:
    """Result of an acknowledged storage write."""
    key: str
    url: str
    file_size: int = 0
    etag: Optional[str] = None


@dataclass
class StorageConfig:
    """Storage configuration."""
    backend: str  # local, s3, minio
    bucket: str = ""
    region: str = ""
    access_key: str = ""
    secret_key: str = ""
    endpoint_url: Optional[str] = None
    use_ssl: bool = True
    local_path: str = "./storage"
    cdn_domain: Optional[str] = None


class StorageBackend(ABC):
    """Abstract base class for storage backends."""

    def __init__(self, config: StorageConfig):
        self.config = config

    @abstractmethod
    def upload(
        self,
        file_path: str,
        key: str,
        content_type: str = "application/octet-stream",
    ) -> StorageResult:
        """Write a local file under ``key``.

        Raises:
            UploadFailedError: On any transport or storage-service error
        """

    def get_url(self, key: str) -> str:
        """Public URL for ``key`` through the distribution host."""
        return f"https://{self.config.cdn_domain}/{key}"


class LocalStorage(StorageBackend):
    """Local filesystem storage backend."""

    def __init__(self, config: StorageConfig):
        super().__init__(config)
        self.base_path = Path(config.local_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _get_full_path(self, key: str) -> Path:
        return self.base_path / key

    def upload(
        self,
        file_path: str,
        key: str,
        content_type: str = "application/octet-stream",
    ) -> StorageResult:
        dest_path = self._get_full_path(key)
        try:
            dest_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(file_path, dest_path)
            file_size = dest_path.stat().st_size
        except OSError as e:
            raise UploadFailedError(f"Local storage write failed for key '{key}': {e}") from e

        return StorageResult(key=key, url=self.get_url(key), file_size=file_size)

    def get_url(self, key: str) -> str:
        if self.config.cdn_domain:
            return super().get_url(key)
        return f"file://{self._get_full_path(key).absolute()}"


class S3Storage(StorageBackend):
    """S3/MinIO compatible storage backend."""

    def __init__(self, config: StorageConfig):
        super().__init__(config)
        self._client = None

    def _get_client(self):
        """Get or create S3 client."""
        if self._client is None:
            client_kwargs = {
                "service_name": "s3",
                "region_name": self.config.region or "us-east-1",
            }

            if self.config.access_key and self.config.secret_key:
                client_kwargs["aws_access_key_id"] = self.config.access_key
                client_kwargs["aws_secret_access_key"] = self.config.secret_key

            # For MinIO or other S3-compatible storage
            if self.config.endpoint_url:
                client_kwargs["endpoint_url"] = self.config.endpoint_url
                client_kwargs["config"] = BotoConfig(
                    signature_version="s3v4",
                    s3={"addressing_style": "path"},
                )
                if not self.config.use_ssl:
                    client_kwargs["use_ssl"] = False

            self._client = boto3.client(**client_kwargs)

        return self._client

    def upload(
        self,
        file_path: str,
        key: str,
        content_type: str = "application/octet-stream",
    ) -> StorageResult:
        try:
            client = self._get_client()
            file_size = os.path.getsize(file_path)

            with open(file_path, "rb") as f:
                response = client.put_object(
                    Bucket=self.config.bucket,
                    Key=key,
                    Body=f,
                    ContentType=content_type,
                )
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code")
            logger.error(
                f"S3 put_object failed: bucket='{self.config.bucket}' key='{key}' code={error_code}"
            )
            raise UploadFailedError(f"S3 put_object failed for key '{key}': {error_code}") from e
        except (BotoCoreError, OSError) as e:
            logger.error(
                f"S3 upload error: bucket='{self.config.bucket}' key='{key}' error={repr(e)}"
            )
            raise UploadFailedError(f"S3 upload failed for key '{key}': {e}") from e

        etag = response.get("ETag", "").strip('"')
        return StorageResult(
            key=key,
            url=self.get_url(key),
            file_size=file_size,
            etag=etag,
        )


class Storage:
    """Universal storage interface.

    Automatically selects the appropriate backend based on configuration.
    """

    _instance: Optional["Storage"] = None

    def __init__(self, config: Optional[StorageConfig] = None):
        """Initialize storage with configuration.

        Args:
            config: Storage configuration (uses settings if not provided)
        """
        if config is None:
            config = StorageConfig(
                backend=settings.STORAGE_BACKEND,
                bucket=settings.STORAGE_BUCKET,
                region=settings.STORAGE_REGION,
                access_key=settings.STORAGE_ACCESS_KEY,
                secret_key=settings.STORAGE_SECRET_KEY,
                endpoint_url=settings.STORAGE_ENDPOINT_URL,
                use_ssl=settings.STORAGE_USE_SSL,
                local_path=settings.LOCAL_STORAGE_PATH,
                cdn_domain=settings.CDN_DOMAIN,
            )

        self.config = config
        self._backend = self._create_backend(config)

    def _create_backend(self, config: StorageConfig) -> StorageBackend:
        backend_type = config.backend.lower()

        if backend_type == "local":
            return LocalStorage(config)
        elif backend_type in ("s3", "minio", "aws"):
            return S3Storage(config)
        else:
            raise ValueError(f"Unsupported storage backend: {backend_type}")

    @classmethod
    def get_instance(cls) -> "Storage":
        """Get singleton storage instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def upload(
        self,
        file_path: str,
        key: str,
        content_type: str = "application/octet-stream",
    ) -> StorageResult:
        """Upload a file to storage, blocking until acknowledged."""
        return self._backend.upload(file_path, key, content_type)

    def get_url(self, key: str) -> str:
        """Get the public URL for a key."""
        return self._backend.get_url(key)


def get_storage() -> Storage:
    """Get the default storage instance."""
    return Storage.get_instance()
