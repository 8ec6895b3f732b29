"""
S3 Storage Service — User-Scoped

Every converted artifact lives under the owning user's prefix:

    s3://<BUCKET>/<user_id>/documents/<doc_id>.pdf
    s3://<BUCKET>/<user_id>/documents/<doc_id>.txt

The prefix is built server-side from the verified token subject, never
from client input, so one user's storage object cannot address another
user's keys.

Object lifecycle:
  - Uploads go through put_object() (SSE-S3 encryption at rest).
  - Downloads are served through presigned GET URLs scoped to one key.
  - Deletes are hard deletes; the metadata record is removed alongside.
"""

from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass, field

import aioboto3
from botocore.exceptions import ClientError

from docconvert.core.config import settings

logger = logging.getLogger(__name__)

DOCUMENTS_PREFIX = "documents"


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class S3Object:
    """Represents a stored object — returned by put_object."""
    user_id:      str
    key:          str          # full S3 key including prefix
    bucket:       str
    size_bytes:   int
    content_type: str
    etag:         str


@dataclass(frozen=True)
class PresignedUrl:
    url:        str
    expires_in: int   # seconds
    method:     str   # GET


@dataclass
class UserStorageConfig:
    user_id: str
    bucket:  str = field(default_factory=lambda: settings.s3_bucket)

    def key(self, filename: str) -> str:
        """
        Build a user-scoped S3 key.
        Pattern:  <user_id>/documents/<filename>
        """
        safe_name = filename.replace("/", "_").replace("..", "_")
        return f"{self.user_id}/{DOCUMENTS_PREFIX}/{safe_name}"


# ---------------------------------------------------------------------------
# S3 Service
# ---------------------------------------------------------------------------

class S3DocumentStorage:
    """
    Async S3 operations scoped to a single user.

    Created per request by a FastAPI dependency, so the user id is bound
    once and cannot be switched mid-request.
    """

    def __init__(self, config: UserStorageConfig) -> None:
        self._cfg = config
        self._session = aioboto3.Session()

    @property
    def config(self) -> UserStorageConfig:
        return self._cfg

    def _client(self):
        """Return a scoped async S3 client context manager."""
        return self._session.client(
            "s3",
            region_name=settings.aws_region,
            aws_access_key_id=settings.aws_access_key_id or None,
            aws_secret_access_key=settings.aws_secret_access_key or None,
        )

    def key_for(self, filename: str) -> str:
        return self._cfg.key(filename)

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    async def put_object(
        self,
        filename: str,
        body: bytes,
        content_type: str | None = None,
    ) -> S3Object:
        key = self._cfg.key(filename)
        ct  = content_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"

        async with self._client() as s3:
            resp = await s3.put_object(
                Bucket=self._cfg.bucket,
                Key=key,
                Body=body,
                ContentType=ct,
                ServerSideEncryption="AES256",
                Metadata={"user_id": self._cfg.user_id},
            )

        logger.info(
            "S3 upload ok | user=%s key=%s size=%d",
            self._cfg.user_id, key, len(body),
        )

        return S3Object(
            user_id=self._cfg.user_id,
            key=key,
            bucket=self._cfg.bucket,
            size_bytes=len(body),
            content_type=ct,
            etag=resp.get("ETag", "").strip('"'),
        )

    async def get_object(self, filename: str) -> bytes:
        key = self._cfg.key(filename)
        async with self._client() as s3:
            try:
                resp = await s3.get_object(Bucket=self._cfg.bucket, Key=key)
                return await resp["Body"].read()
            except ClientError as exc:
                code = exc.response["Error"]["Code"]
                if code in ("NoSuchKey", "404"):
                    raise FileNotFoundError(f"Object not found: {key}") from exc
                raise

    async def delete_object(self, filename: str) -> None:
        key = self._cfg.key(filename)
        async with self._client() as s3:
            await s3.delete_object(Bucket=self._cfg.bucket, Key=key)
        logger.info("S3 delete | user=%s key=%s", self._cfg.user_id, key)

    async def generate_presigned_get(
        self,
        filename: str,
        expires_in: int | None = None,
    ) -> PresignedUrl:
        """Presigned GET URL scoped to the exact object key."""
        key = self._cfg.key(filename)
        ttl = expires_in or settings.presigned_url_ttl_seconds
        async with self._client() as s3:
            url = await s3.generate_presigned_url(
                "get_object",
                Params={"Bucket": self._cfg.bucket, "Key": key},
                ExpiresIn=ttl,
            )
        return PresignedUrl(url=url, expires_in=ttl, method="GET")
