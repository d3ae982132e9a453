"""
Storage abstraction for Firebase Storage, S3-compatible buckets and in-memory testing.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Optional, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from google.api_core import exceptions as google_exceptions


class StorageError(Exception):
    """Raised when an object cannot be uploaded."""


class StorageClient(Protocol):
    """Defines the operations the CMS needs from object storage."""

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> str:
        ...


def build_object_path(
    folder: str,
    extension: str,
    name_prefix: Optional[str] = None,
    now: Optional[float] = None,
) -> str:
    """
    Returns a collision-resistant object path such as
    `filters/1718000000000_3f9a1c2b7d.jpg`.
    """
    millis = int((time.time() if now is None else now) * 1000)
    name = f"{millis}_{uuid.uuid4().hex[:10]}.{extension}"
    if name_prefix:
        name = f"{name_prefix}_{name}"
    return f"{folder}/{name}"


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/storage"
    stored_objects: dict = field(default_factory=dict)

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> str:
        self.stored_objects[path] = (data, content_type)
        return f"{self.base_url}/{path}"


@dataclass
class FirebaseStorageClient:
    """
    Firebase Storage (Google Cloud Storage) client. `bucket` is a
    `google.cloud.storage.Bucket`, usually from `firebase_admin.storage.bucket()`.
    """

    bucket: object

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> str:
        blob = self.bucket.blob(path)
        try:
            blob.upload_from_string(data, content_type=content_type)
            blob.make_public()
        except google_exceptions.GoogleAPICallError as e:
            raise StorageError(f"Upload of {path} failed: {e}") from e
        return blob.public_url


@dataclass
class S3StorageClient:
    """
    S3-compatible storage client (AWS S3, Tencent COS, MinIO).
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str
    public_base_url: str = ""

    def __post_init__(self):
        # Use virtual-hosted style addressing to satisfy COS requirements.
        config = Config(
            s3={"addressing_style": "virtual"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )

    def _public_url(self, path: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{path}"
        return self._client.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": self.bucket, "Key": path},
            ExpiresIn=7 * 24 * 3600,
        )

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> str:
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=path,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Upload of {path} failed: {e}") from e
        return self._public_url(path)
