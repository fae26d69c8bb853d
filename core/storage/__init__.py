from core.storage.manager import AttachmentStorageManager
from core.storage.resolver import classify, descriptor_fields
from core.storage.types import (
    AttachmentDescriptor,
    CascadeResult,
    DeleteOutcome,
    LocalAttachment,
    NoAttachment,
    PresignedUpload,
    RemoteAttachment,
    StorageBackend,
    StoredFile,
)

__all__ = [
    "AttachmentDescriptor",
    "AttachmentStorageManager",
    "CascadeResult",
    "DeleteOutcome",
    "LocalAttachment",
    "NoAttachment",
    "PresignedUpload",
    "RemoteAttachment",
    "StorageBackend",
    "StoredFile",
    "classify",
    "descriptor_fields",
]
