"""
Image upload sinks: inline data URLs, local disk, and Tencent COS (S3-compatible).
"""

from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol
from uuid import uuid4

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from rewards_backend.errors import StorageError, ValidationError
from rewards_backend.images import encode_inline_image

logger = logging.getLogger(__name__)


class ImageStorage(Protocol):
    """Defines the operations the API needs to keep an uploaded image."""

    def store_image(self, data: bytes, content_type: str) -> str:
        ...

    def reference_prefixes(self) -> tuple[str, ...]:
        ...


def resolve_image_type(
    content_type: Optional[str], filename: Optional[str]
) -> str:
    """
    Return the ``image/*`` media type of an upload, falling back to a guess
    from the filename when the client sent a generic content type.
    """
    if content_type and content_type.lower().startswith("image/"):
        return content_type.lower().split(";")[0].strip()
    guessed, _ = mimetypes.guess_type(filename or "")
    if guessed and guessed.startswith("image/"):
        return guessed
    raise ValidationError("Only image uploads are supported")


def check_upload_size(data: bytes, max_bytes: int) -> None:
    if not data:
        raise ValidationError("No file uploaded")
    if len(data) > max_bytes:
        raise ValidationError(f"File too large (max {max_bytes} bytes)")


def _extension_for(content_type: str) -> str:
    extension = mimetypes.guess_extension(content_type)
    if extension:
        return extension
    return "." + content_type.split("/", 1)[1].split("+", 1)[0]


@dataclass
class InlineImageStorage:
    """Keeps nothing server-side: the image travels inside the record."""

    def store_image(self, data: bytes, content_type: str) -> str:
        return encode_inline_image(data, content_type.split("/", 1)[1])

    def reference_prefixes(self) -> tuple[str, ...]:
        return ()


@dataclass
class LocalDiskImageStorage:
    """Writes uploads under ``directory``; the app serves them at ``url_prefix``."""

    directory: str
    url_prefix: str = "/uploads"

    def __post_init__(self):
        self.url_prefix = "/" + self.url_prefix.strip("/")
        Path(self.directory).mkdir(parents=True, exist_ok=True)

    def store_image(self, data: bytes, content_type: str) -> str:
        name = f"{uuid4().hex}{_extension_for(content_type)}"
        target = Path(self.directory) / name
        try:
            target.write_bytes(data)
        except OSError as exc:
            logger.exception("Failed to write upload to %s", target)
            raise StorageError() from exc
        return f"{self.url_prefix}/{name}"

    def reference_prefixes(self) -> tuple[str, ...]:
        return (f"{self.url_prefix}/",)


@dataclass
class CosImageStorage:
    """
    S3-compatible storage client for Tencent COS.
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str
    public_base_url: str
    key_prefix: str = "images"

    def __post_init__(self):
        self.public_base_url = self.public_base_url.rstrip("/")
        # Use virtual-hosted style addressing to satisfy COS requirements.
        config = Config(
            s3={"addressing_style": "virtual"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint,
            region_name=self.region,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )

    def store_image(self, data: bytes, content_type: str) -> str:
        key = f"{self.key_prefix}/{uuid4().hex}{_extension_for(content_type)}"
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.exception("Failed to upload %s to bucket %s", key, self.bucket)
            raise StorageError() from exc
        return f"{self.public_base_url}/{key}"

    def reference_prefixes(self) -> tuple[str, ...]:
        return (f"{self.public_base_url}/",)
