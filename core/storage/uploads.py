from __future__ import annotations

import logging
from pathlib import Path
from uuid import uuid4

from botocore.exceptions import BotoCoreError, ClientError

from core.errors import storage_backend_timeout, storage_backend_unavailable, storage_not_configured
from core.storage.s3_provider import ObjectStorageClient, classify_client_error
from core.storage.types import DeleteOutcome, PresignedUpload

logger = logging.getLogger(__name__)


def build_object_key(filename: str, prefix: str = "tiddlers") -> str:
    extension = Path(filename).suffix.lower() or ".bin"
    if not extension[1:].isalnum():
        extension = ".bin"
    object_key = f"{uuid4().hex}{extension}"
    return f"{prefix}/{object_key}" if prefix else object_key


class PresignedUploadCoordinator:
    """Hands out signed PUT URLs for direct browser uploads.

    Signing records nothing server side. The browser stores the returned
    key, bucket and region in the document it writes afterwards; a URL that
    is signed but never followed by a document write leaves an orphan object.
    """

    def __init__(
        self,
        *,
        client: ObjectStorageClient | None,
        bucket_name: str | None,
        region: str,
        provider_name: str,
        public_url_base: str | None,
        key_prefix: str = "tiddlers",
        ttl_seconds: int = 300,
    ) -> None:
        self._client = client
        self._bucket = bucket_name
        self._region = region
        self._provider_name = provider_name
        self._public_url_base = public_url_base
        self._key_prefix = key_prefix
        self._ttl_seconds = ttl_seconds

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def request_upload(self, filename: str, content_type: str) -> PresignedUpload:
        if self._client is None:
            raise storage_not_configured("S3 is not enabled in configuration")
        if not self._bucket:
            raise storage_not_configured("S3 bucket name is not configured")
        if not self._public_url_base:
            raise storage_not_configured("S3 public URL base is not configured")

        key = build_object_key(filename, self._key_prefix)
        try:
            upload_url = self._client.presign_upload(
                self._bucket,
                key,
                region=self._region,
                content_type=content_type,
                ttl=self._ttl_seconds,
            )
        except (ClientError, BotoCoreError) as exc:
            if classify_client_error(exc) == DeleteOutcome.TIMEOUT:
                raise storage_backend_timeout(self._provider_name) from exc
            raise storage_backend_unavailable(self._provider_name, f"S3 presign failed: {exc}") from exc

        logger.debug("Signed upload for %r as %s/%s", filename, self._bucket, key)
        return PresignedUpload(
            upload_url=upload_url,
            key=key,
            bucket=self._bucket,
            region=self._region,
            provider_name=self._provider_name,
            public_url=f"{self._public_url_base.rstrip('/')}/{key}",
            expires_in=self._ttl_seconds,
        )
