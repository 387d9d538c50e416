"""
Blob storage boundary for material and submission files.

The core only keeps the path a backend returns and hands out time-limited
signed URLs; file bytes never pass back through the record store.
"""
import logging
import re
import threading
import time
from dataclasses import dataclass
from typing import Dict, Protocol, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from .aws_clients import s3_client
from .config import Settings
from .errors import NotFound, UpstreamFailure

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True)
class FileUpload:
    """A file received from a client, before it reaches the blob store."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)


def safe_filename(filename: str) -> str:
    """Reduce a client-supplied file name to a safe object-key component."""
    base = (filename or "").replace("\\", "/").rsplit("/", 1)[-1]
    cleaned = _UNSAFE_CHARS.sub("_", base).strip("._")
    return cleaned or "file"


def material_object_key(filename: str) -> str:
    return f"{int(time.time() * 1000)}-{safe_filename(filename)}"


def submission_object_key(user_id: str, filename: str) -> str:
    return f"{safe_filename(user_id)}-{int(time.time() * 1000)}-{safe_filename(filename)}"


class BlobStore(Protocol):
    """Protocol defining the interface for blob storage backends."""

    def put_object(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        """Store ``data`` and return the path to persist on the record."""
        ...

    def sign_download_url(self, bucket: str, path: str, ttl_seconds: int) -> str:
        """Return an opaque URL that grants read access for ``ttl_seconds``."""
        ...


class S3BlobStore:
    """S3 storage backend implementation."""

    def __init__(self, client) -> None:
        self._s3 = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3BlobStore":
        return cls(s3_client(settings))

    def put_object(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        try:
            self._s3.put_object(
                Bucket=bucket,
                Key=key,
                Body=data,
                ContentType=content_type or "application/octet-stream",
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error uploading object {bucket}/{key}: {e}")
            raise UpstreamFailure("Failed to upload file") from e
        return key

    def sign_download_url(self, bucket: str, path: str, ttl_seconds: int) -> str:
        try:
            return self._s3.generate_presigned_url(
                "get_object",
                Params={"Bucket": bucket, "Key": path},
                ExpiresIn=ttl_seconds,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error creating signed URL for {bucket}/{path}: {e}")
            raise UpstreamFailure("Failed to generate download URL") from e


class InMemoryBlobStore:
    """Keeps objects in process memory; signed URLs use the ``memory://`` scheme."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._objects: Dict[Tuple[str, str], Tuple[bytes, str]] = {}

    def put_object(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        with self._lock:
            self._objects[(bucket, key)] = (bytes(data), content_type)
        return key

    def sign_download_url(self, bucket: str, path: str, ttl_seconds: int) -> str:
        with self._lock:
            if (bucket, path) not in self._objects:
                raise NotFound("File not found")
        expires = int(time.time()) + ttl_seconds
        return f"memory://{bucket}/{path}?expires={expires}"

    def read_object(self, bucket: str, path: str) -> bytes:
        with self._lock:
            obj = self._objects.get((bucket, path))
        if obj is None:
            raise NotFound("File not found")
        return obj[0]


def build_blob_store(settings: Settings) -> BlobStore:
    if settings.blob_store_backend == "s3":
        logger.info("Initializing S3 blob store")
        return S3BlobStore.from_settings(settings)
    logger.info("Initializing in-memory blob store")
    return InMemoryBlobStore()
