from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


class StorageBackend(str, Enum):
    LOCAL = "local"
    S3 = "s3"


class DeleteOutcome(str, Enum):
    DELETED = "deleted"
    NOT_FOUND = "not_found"
    SKIPPED = "skipped"
    AUTH_FAILED = "auth_failed"
    UNAVAILABLE = "unavailable"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class NoAttachment:
    kind: str = "none"


@dataclass(frozen=True)
class LocalAttachment:
    path: str
    kind: str = "local"


@dataclass(frozen=True)
class RemoteAttachment:
    bucket: str
    key: str
    region: str | None = None
    provider_name: str | None = None
    kind: str = "remote"


AttachmentDescriptor = Union[NoAttachment, LocalAttachment, RemoteAttachment]


@dataclass(frozen=True)
class StoredFile:
    path: str
    canonical_uri: str
    size: int


@dataclass(frozen=True)
class PresignedUpload:
    upload_url: str
    key: str
    bucket: str
    region: str
    provider_name: str
    public_url: str
    expires_in: int


@dataclass(frozen=True)
class CascadeResult:
    descriptor: AttachmentDescriptor
    outcome: DeleteOutcome
