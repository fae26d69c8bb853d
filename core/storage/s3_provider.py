from __future__ import annotations

import logging
from threading import Lock
from typing import Any

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    NoCredentialsError,
    ReadTimeoutError,
)

from core.storage.types import DeleteOutcome

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"NoSuchKey", "NoSuchBucket", "404", "NotFound"}
_AUTH_CODES = {
    "AccessDenied",
    "403",
    "Forbidden",
    "InvalidAccessKeyId",
    "SignatureDoesNotMatch",
    "ExpiredToken",
    "InvalidToken",
}


def classify_client_error(err: Exception) -> DeleteOutcome:
    if isinstance(err, (ConnectTimeoutError, ReadTimeoutError)):
        return DeleteOutcome.TIMEOUT
    if isinstance(err, NoCredentialsError):
        return DeleteOutcome.AUTH_FAILED
    if isinstance(err, ClientError):
        code = str(err.response.get("Error", {}).get("Code", ""))
        if code in _NOT_FOUND_CODES:
            return DeleteOutcome.NOT_FOUND
        if code in _AUTH_CODES:
            return DeleteOutcome.AUTH_FAILED
        return DeleteOutcome.UNAVAILABLE
    return DeleteOutcome.UNAVAILABLE


class ObjectStorageClient:
    """S3-compatible client that takes bucket and region on every call.

    Nothing about the target object is remembered between calls, so objects
    recorded against an old bucket or region stay reachable after the server's
    configuration moves on. One boto3 client is built per region, from a
    private session, under a lock; the clients themselves are thread-safe.
    """

    def __init__(
        self,
        *,
        access_key: str,
        secret_key: str,
        endpoint_url: str | None = None,
        timeout_seconds: int = 10,
    ) -> None:
        self._session = boto3.session.Session(
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
        )
        self._endpoint_url = endpoint_url
        self._config = BotoConfig(
            signature_version="s3v4",
            connect_timeout=timeout_seconds,
            read_timeout=timeout_seconds,
            retries={"max_attempts": 1, "mode": "standard"},
            s3={"addressing_style": "path"},
        )
        self._clients: dict[str | None, Any] = {}
        self._lock = Lock()

    def _client(self, region: str | None) -> Any:
        region = region or None
        with self._lock:
            client = self._clients.get(region)
            if client is None:
                client = self._session.client(
                    "s3",
                    region_name=region,
                    endpoint_url=self._endpoint_url,
                    config=self._config,
                )
                self._clients[region] = client
            return client

    def presign_upload(
        self,
        bucket: str,
        key: str,
        *,
        region: str | None,
        content_type: str | None = None,
        ttl: int = 300,
    ) -> str:
        params: dict[str, Any] = {"Bucket": bucket, "Key": key}
        if content_type:
            params["ContentType"] = content_type
        return self._client(region).generate_presigned_url(
            ClientMethod="put_object",
            Params=params,
            ExpiresIn=ttl,
        )

    def delete(self, bucket: str, key: str, region: str | None) -> DeleteOutcome:
        client = self._client(region)
        try:
            # delete_object succeeds for missing keys, so check with head_object first
            client.head_object(Bucket=bucket, Key=key)
            client.delete_object(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:
            outcome = classify_client_error(exc)
            logger.debug("S3 delete %s/%s in %s -> %s (%s)", bucket, key, region, outcome.value, exc)
            return outcome
        logger.info("Deleted S3 object bucket=%s key=%s region=%s", bucket, key, region)
        return DeleteOutcome.DELETED
