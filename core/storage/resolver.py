"""Classify document metadata into an attachment location.

Everything here is pure: no I/O and no configuration. The descriptor written
into a document's metadata at upload time is the only input, so a document
keeps pointing at the same object after the bucket, region or endpoint of the
running server change.
"""

from __future__ import annotations

from typing import Any, Mapping

from core.storage.types import (
    AttachmentDescriptor,
    LocalAttachment,
    NoAttachment,
    RemoteAttachment,
    StorageBackend,
)

LOCAL_URI_PREFIX = "/files/"

CANONICAL_URI_FIELD = "_canonical_uri"
FILE_STORAGE_FIELD = "_file_storage"
S3_KEY_FIELD = "_s3_key"
S3_BUCKET_FIELD = "_s3_bucket"
S3_REGION_FIELD = "_s3_region"
S3_NAME_FIELD = "_s3_name"


def _field(metadata: Mapping[str, Any], name: str) -> str | None:
    value = metadata.get(name)
    if value is None:
        nested = metadata.get("fields")
        if isinstance(nested, Mapping):
            value = nested.get(name)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def is_safe_local_name(name: str) -> bool:
    if not name or name in {".", ".."}:
        return False
    if ".." in name or "/" in name or "\\" in name or "\x00" in name:
        return False
    return True


def local_name_from_uri(uri: str | None) -> str | None:
    if not uri or not uri.startswith(LOCAL_URI_PREFIX):
        return None
    name = uri[len(LOCAL_URI_PREFIX):]
    return name if is_safe_local_name(name) else None


def classify(metadata: Mapping[str, Any] | None) -> AttachmentDescriptor:
    if not isinstance(metadata, Mapping):
        return NoAttachment()

    storage = _field(metadata, FILE_STORAGE_FIELD)
    canonical_uri = _field(metadata, CANONICAL_URI_FIELD)

    if storage == StorageBackend.S3.value:
        bucket = _field(metadata, S3_BUCKET_FIELD)
        key = _field(metadata, S3_KEY_FIELD)
        if bucket is None or key is None:
            return NoAttachment()
        return RemoteAttachment(
            bucket=bucket,
            key=key,
            region=_field(metadata, S3_REGION_FIELD),
            provider_name=_field(metadata, S3_NAME_FIELD),
        )

    if storage == StorageBackend.LOCAL.value or (storage is None and canonical_uri):
        # rows written before _file_storage existed only carry the /files/ URI
        name = local_name_from_uri(canonical_uri)
        if name is None:
            return NoAttachment()
        return LocalAttachment(path=name)

    return NoAttachment()


def descriptor_fields(descriptor: AttachmentDescriptor, canonical_uri: str | None = None) -> dict[str, str]:
    """Metadata fields that freeze a backend decision into a document."""
    if isinstance(descriptor, RemoteAttachment):
        fields = {
            FILE_STORAGE_FIELD: StorageBackend.S3.value,
            S3_BUCKET_FIELD: descriptor.bucket,
            S3_KEY_FIELD: descriptor.key,
        }
        if descriptor.region:
            fields[S3_REGION_FIELD] = descriptor.region
        if descriptor.provider_name:
            fields[S3_NAME_FIELD] = descriptor.provider_name
        if canonical_uri:
            fields[CANONICAL_URI_FIELD] = canonical_uri
        return fields

    if isinstance(descriptor, LocalAttachment):
        return {
            FILE_STORAGE_FIELD: StorageBackend.LOCAL.value,
            CANONICAL_URI_FIELD: canonical_uri or f"{LOCAL_URI_PREFIX}{descriptor.path}",
        }

    return {}
