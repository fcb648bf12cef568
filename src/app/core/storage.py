"""
Object Storage

Uploads applicant images and certificate PDFs to an S3-compatible bucket
(AWS S3, Cloudflare R2, MinIO) and hands back public URLs.

Images arrive as base64 data URLs. When storage is not configured they are
kept inline (the data URL itself is stored in the database). When an upload
fails, ``settings.image_upload_fallback_inline`` decides between keeping the
data URL and failing the submission.

boto3 is synchronous, so every call goes through ``asyncio.to_thread``.
"""

import asyncio
import base64
import binascii
import logging
import re
import time
from dataclasses import dataclass

import boto3
import httpx
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import Settings, settings

logger = logging.getLogger(__name__)

DATA_URL_PATTERN = re.compile(r"^data:image/(\w+);base64,(.+)$", re.DOTALL)


class StorageError(Exception):
    """Raised when an object could not be stored."""


@dataclass(frozen=True)
class DecodedImage:
    content: bytes
    extension: str
    content_type: str


def is_url(value: str | None) -> bool:
    """Check if a stored image value is a URL (as opposed to an inline data URL)."""
    if not value:
        return False
    return value.startswith("http://") or value.startswith("https://")


def decode_data_url(data_url: str) -> DecodedImage:
    """
    Decode a ``data:image/<type>;base64,...`` string.

    Raises:
        ValueError: If the value is not a base64 image data URL
    """
    match = DATA_URL_PATTERN.match(data_url)
    if not match:
        raise ValueError("Invalid base64 data URL")

    image_type, payload = match.groups()
    try:
        content = base64.b64decode(payload, validate=False)
    except binascii.Error as e:
        raise ValueError("Invalid base64 payload") from e

    extension = "jpg" if image_type == "jpeg" else image_type
    return DecodedImage(content=content, extension=extension, content_type=f"image/{image_type}")


def safe_key_part(value: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "_", value)


class ObjectStorage:
    """
    Thin async wrapper over a boto3 S3 client.

    Args:
        config: settings holding the bucket credentials and policy flags
        client: pre-built boto3 client (tests inject a MagicMock)
    """

    def __init__(self, config: Settings | None = None, client=None):
        self.config = config or settings
        self._client = client

    @property
    def is_configured(self) -> bool:
        return self._client is not None or self.config.storage_configured

    def _get_client(self):
        if self._client is None:
            self._client = boto3.client(
                "s3",
                endpoint_url=self.config.s3_endpoint_url,
                aws_access_key_id=self.config.s3_access_key_id,
                aws_secret_access_key=self.config.s3_secret_access_key,
                region_name=self.config.s3_region,
                config=Config(signature_version="s3v4"),
            )
        return self._client

    def public_url(self, key: str) -> str:
        base = (self.config.s3_public_base_url or "").rstrip("/")
        return f"{base}/{key}"

    async def upload_bytes(self, key: str, content: bytes, content_type: str) -> str:
        """
        Upload raw bytes and return the object's public URL.

        Raises:
            StorageError: If the upload fails
        """
        client = self._get_client()
        try:
            await asyncio.to_thread(
                client.put_object,
                Bucket=self.config.s3_bucket,
                Key=key,
                Body=content,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to upload {key}: {e}") from e

        return self.public_url(key)

    async def upload_image(self, data_url: str, roll_number: str, kind: str) -> str:
        """
        Upload one inline image.

        Args:
            data_url: base64 image data URL
            roll_number: university roll number, used in the object key
            kind: "photo" or "signature"

        Returns:
            Public URL of the stored image

        Raises:
            StorageError: If decoding or upload fails
        """
        try:
            image = decode_data_url(data_url)
        except ValueError as e:
            raise StorageError(f"Cannot upload {kind}: {e}") from e

        key = f"{kind}/{safe_key_part(roll_number)}_{int(time.time() * 1000)}.{image.extension}"
        return await self.upload_bytes(key, image.content, image.content_type)

    async def _store_image(self, value: str | None, roll_number: str, kind: str) -> str | None:
        if not value or is_url(value):
            return value or None

        try:
            return await self.upload_image(value, roll_number, kind)
        except StorageError as e:
            if not self.config.image_upload_fallback_inline:
                raise
            logger.warning(f"{kind} upload failed, keeping inline data: {e}")
            return value

    async def upload_images(
        self,
        photo: str | None,
        signature: str | None,
        roll_number: str,
    ) -> tuple[str | None, str | None]:
        """
        Store the applicant's photo and signature.

        Returns:
            (photo, signature) as URLs, or the original data URLs when storage
            is not configured or an upload failed under the inline fallback

        Raises:
            StorageError: If an upload fails and inline fallback is disabled
        """
        if not self.is_configured:
            logger.debug("Object storage not configured, storing images inline")
            return photo or None, signature or None

        photo_url = await self._store_image(photo, roll_number, "photo")
        signature_url = await self._store_image(signature, roll_number, "signature")
        return photo_url, signature_url

    async def upload_certificate_pdf(self, content: bytes, certificate_id: str) -> str | None:
        """
        Store a rendered certificate.

        Returns:
            Public URL, or None when storage is not configured or the upload failed
        """
        if not self.is_configured:
            logger.warning("Object storage not configured, certificate PDF not stored")
            return None

        key = f"certificates/{certificate_id}.pdf"
        try:
            return await self.upload_bytes(key, content, "application/pdf")
        except StorageError as e:
            logger.error(f"Certificate upload failed for {certificate_id}: {e}")
            return None


async def fetch_bytes(url: str) -> bytes | None:
    """
    Download an object over HTTP(S).

    Returns:
        The response body, or None if the request failed
    """
    try:
        async with httpx.AsyncClient(timeout=settings.http_fetch_timeout_seconds) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.content
    except httpx.HTTPError as e:
        logger.error(f"Failed to fetch {url}: {e}")
        return None


async def load_image_bytes(value: str | None) -> bytes | None:
    """Resolve a stored image (URL or data URL) into raw bytes."""
    if not value:
        return None
    if is_url(value):
        return await fetch_bytes(value)
    try:
        return decode_data_url(value).content
    except ValueError:
        logger.warning("Stored image is neither a URL nor a valid data URL")
        return None


_storage: ObjectStorage | None = None


def get_storage() -> ObjectStorage:
    """FastAPI dependency returning the shared object storage client."""
    global _storage
    if _storage is None:
        _storage = ObjectStorage()
    return _storage
