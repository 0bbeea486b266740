import asyncio
import logging
import shutil
import time
from functools import lru_cache
from pathlib import Path

import aiofiles
import boto3

from app.config import Settings, get_settings
from app.exceptions import StorageUploadFailure

logger = logging.getLogger(__name__)


class AssetStorage:
    """
    Durable storage for generated images.

    ``upload_image`` stages the bytes in a transient file, hands that file to
    the backend and always removes it afterwards. Backends implement
    ``_upload_file`` and return the public URL.
    """

    def __init__(self, staging_path: Path):
        self.staging_path = Path(staging_path)

    def _staging_file(self) -> Path:
        return self.staging_path / f"thumbnail-{int(time.time() * 1000)}.png"

    async def _upload_file(self, file_path: Path, folder: str) -> str:
        raise NotImplementedError

    async def upload_image(self, file_data: bytes, folder: str) -> str:
        """Persist image bytes under ``folder`` and return their public URL."""
        file_path = self._staging_file()

        try:
            self.staging_path.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(file_path, "wb") as f:
                await f.write(file_data)

            url = await self._upload_file(file_path, folder)
        except StorageUploadFailure:
            raise
        except Exception as e:
            raise StorageUploadFailure(f"Upload failed: {e}") from e
        finally:
            self._discard(file_path)

        logger.info("Uploaded %s -> %s", file_path.name, url)
        return url

    def _discard(self, file_path: Path) -> None:
        """Remove a staged file; failures are logged, never raised."""
        try:
            file_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove staged file %s: %s", file_path, e)

    async def ensure_storage_exists(self) -> None:
        """Ensure storage is ready (create directories)."""
        self.staging_path.mkdir(parents=True, exist_ok=True)


class LocalStorage(AssetStorage):
    """
    Local file storage, served by the app under /files.
    Used in development; production uses the S3 backend.
    """

    def __init__(self, base_path: Path, staging_path: Path, public_base_url: str):
        super().__init__(staging_path)
        self.base_path = Path(base_path)
        self.public_base_url = public_base_url.rstrip("/")

    async def _upload_file(self, file_path: Path, folder: str) -> str:
        destination = self.base_path / folder / file_path.name
        destination.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(shutil.copyfile, file_path, destination)
        return f"{self.public_base_url}/files/{folder}/{file_path.name}"

    async def ensure_storage_exists(self) -> None:
        await super().ensure_storage_exists()
        self.base_path.mkdir(parents=True, exist_ok=True)


class S3Storage(AssetStorage):
    """S3-compatible bucket fronted by a CDN."""

    def __init__(self, settings: Settings):
        super().__init__(settings.staging_path)
        if not settings.s3_bucket or not settings.cdn_base_url:
            raise ValueError("S3 storage requires s3_bucket and cdn_base_url")
        self.bucket = settings.s3_bucket
        self.cdn_base_url = settings.cdn_base_url.rstrip("/")
        self.client = boto3.client(
            "s3",
            region_name=settings.s3_region,
            endpoint_url=settings.s3_endpoint_url,
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
        )

    async def _upload_file(self, file_path: Path, folder: str) -> str:
        key = f"{folder}/{file_path.name}"
        # boto3 blocks; keep the event loop free
        await asyncio.to_thread(
            self.client.upload_file,
            str(file_path),
            self.bucket,
            key,
            ExtraArgs={"ContentType": "image/png"},
        )
        return f"{self.cdn_base_url}/{key}"


def create_storage(settings: Settings) -> AssetStorage:
    if settings.storage_backend == "s3":
        return S3Storage(settings)
    if settings.storage_backend == "local":
        return LocalStorage(settings.storage_path, settings.staging_path, settings.public_base_url)
    raise ValueError(f"Unknown storage backend: {settings.storage_backend}")


@lru_cache()
def get_storage() -> AssetStorage:
    """FastAPI dependency returning the configured storage backend."""
    return create_storage(get_settings())
