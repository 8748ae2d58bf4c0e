"""MinIO storage service for organization logo files."""

import asyncio
import io
import json
import logging
from functools import lru_cache
from typing import Protocol

from minio import Minio
from minio.deleteobjects import DeleteObject
from minio.error import S3Error

from client_console.core.config import settings

logger = logging.getLogger(__name__)


class LogoStore(Protocol):
    """Object storage operations the client service relies on."""

    async def upload(self, path: str, data: bytes, content_type: str) -> None:
        ...

    async def list_files(self, prefix: str) -> list[str]:
        ...

    async def remove_files(self, paths: list[str]) -> None:
        ...

    def get_public_url(self, path: str) -> str:
        ...


class MinIOService:
    """
    MinIO storage service for organization logos.

    Handles:
    - Logo uploads with overwrite semantics
    - Listing and removing a tenant's logo files
    - Public URL resolution for stored logos
    - Bucket management (public-read policy)
    """

    def __init__(self) -> None:
        """
        Initialize MinIO client with application settings.

        Raises:
            RuntimeError: If MinIO client initialization fails
        """
        try:
            logger.info(f"Initializing MinIO client (endpoint={settings.MINIO_ENDPOINT})")

            self.client = Minio(
                endpoint=settings.MINIO_ENDPOINT,
                access_key=settings.MINIO_ACCESS_KEY,
                secret_key=settings.MINIO_SECRET_KEY,
                secure=settings.MINIO_USE_SSL,
                region=settings.MINIO_REGION,
            )
            self.logos_bucket = settings.MINIO_BUCKET_LOGOS
            self.public_base_url = settings.logos_public_base_url

            logger.info("MinIO client initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize MinIO client: {e}")
            raise RuntimeError(f"MinIO client initialization failed: {e}") from e

    async def ensure_bucket_exists(self) -> None:
        """
        Ensure the logo bucket exists and is publicly readable.

        Should be called on application startup.
        """

        def _create_bucket_if_not_exists() -> None:
            """Create bucket if it doesn't exist (sync wrapper for MinIO)."""
            try:
                if not self.client.bucket_exists(self.logos_bucket):
                    logger.info(f"Creating bucket: {self.logos_bucket}")
                    self.client.make_bucket(self.logos_bucket)
                    self.client.set_bucket_policy(
                        self.logos_bucket, json.dumps(self._public_read_policy())
                    )
                    logger.info(f"Bucket created: {self.logos_bucket}")
                else:
                    logger.debug(f"Bucket already exists: {self.logos_bucket}")
            except S3Error as e:
                logger.error(f"Failed to create bucket {self.logos_bucket}: {e}")
                raise RuntimeError(f"Failed to create bucket {self.logos_bucket}: {e}") from e

        await asyncio.to_thread(_create_bucket_if_not_exists)

    def _public_read_policy(self) -> dict:
        return {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Effect": "Allow",
                    "Principal": {"AWS": ["*"]},
                    "Action": ["s3:GetObject"],
                    "Resource": [f"arn:aws:s3:::{self.logos_bucket}/*"],
                }
            ],
        }

    async def upload(self, path: str, data: bytes, content_type: str) -> None:
        """
        Upload a logo, replacing any object already stored at the same path.

        Args:
            path: Object name inside the logo bucket (e.g. '<tenant_id>/logo.png')
            data: File contents
            content_type: MIME type stored with the object

        Raises:
            RuntimeError: If upload fails
        """

        def _upload() -> None:
            """Sync wrapper for MinIO upload."""
            try:
                logger.debug(f"Uploading to MinIO: {path} ({len(data)} bytes)")
                self.client.put_object(
                    bucket_name=self.logos_bucket,
                    object_name=path,
                    data=io.BytesIO(data),
                    length=len(data),
                    content_type=content_type,
                )
                logger.info(f"Upload complete: {path}")
            except S3Error as e:
                logger.error(f"Upload failed for {path}: {e}")
                raise RuntimeError(f"Failed to upload {path}: {e}") from e

        await asyncio.to_thread(_upload)

    async def list_files(self, prefix: str) -> list[str]:
        """
        List object names directly under a prefix.

        Args:
            prefix: Folder-like prefix, e.g. '<tenant_id>/'

        Returns:
            Full object names found under the prefix

        Raises:
            RuntimeError: If listing fails
        """

        def _list() -> list[str]:
            """Sync wrapper for MinIO list."""
            try:
                return [
                    obj.object_name
                    for obj in self.client.list_objects(self.logos_bucket, prefix=prefix)
                    if not obj.is_dir
                ]
            except S3Error as e:
                raise RuntimeError(f"Failed to list {prefix}: {e}") from e

        return await asyncio.to_thread(_list)

    async def remove_files(self, paths: list[str]) -> None:
        """
        Remove a set of objects.

        Args:
            paths: Object names to delete

        Raises:
            RuntimeError: If any deletion fails
        """

        def _remove() -> None:
            """Sync wrapper for MinIO bulk delete."""
            errors = list(
                self.client.remove_objects(
                    self.logos_bucket,
                    [DeleteObject(path) for path in paths],
                )
            )
            if errors:
                details = ", ".join(f"{err.name}: {err.message}" for err in errors)
                raise RuntimeError(f"Failed to delete {details}")

        try:
            await asyncio.to_thread(_remove)
        except S3Error as e:
            raise RuntimeError(f"Failed to delete {paths}: {e}") from e

    def get_public_url(self, path: str) -> str:
        """Resolve an object name to its public URL."""
        return f"{self.public_base_url}/{self.logos_bucket}/{path}"


@lru_cache
def get_minio_service() -> MinIOService:
    """Get cached MinIO service instance."""
    return MinIOService()
