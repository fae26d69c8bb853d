from __future__ import annotations

import base64
import binascii
import hashlib
import logging
from typing import Any

from starlette.concurrency import run_in_threadpool

from core.database import DocumentStoreManager
from core.errors import AppException, resource_not_found, validation_failed
from core.storage import AttachmentStorageManager, LocalAttachment, descriptor_fields
from core.storage.local_provider import LocalAttachmentStore
from schemas.document_schema import (
    AttachmentDeleteReport,
    DocumentDeleteResult,
    DocumentOut,
    DocumentSummary,
    DocumentWriteResult,
)

logger = logging.getLogger(__name__)

MIME_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/svg+xml": "svg",
    "application/pdf": "pdf",
}


def mime_to_ext(mime: str) -> str:
    return MIME_EXTENSIONS.get(mime, "bin")


def _is_binary_type(mime: str) -> bool:
    return mime.startswith(("image/", "video/", "audio/")) or mime == "application/pdf"


def _decode_base64_text(text: str) -> bytes | None:
    # data: URLs carry a "data:<mime>;base64," header before the payload
    encoded = text.split(",", 1)[1] if "," in text else text
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        return None


def offload_binary_attachment(
    title: str,
    metadata: dict[str, Any],
    local_store: LocalAttachmentStore,
) -> dict[str, Any]:
    """Move base64 binary content out of ``metadata`` into the local store.

    Returns the metadata to persist: unchanged unless the document is a
    binary type carrying inline base64 text, in which case the text is
    cleared and the local location is frozen into the metadata.
    """
    mime = metadata.get("type")
    text = metadata.get("text")
    if not isinstance(mime, str) or not _is_binary_type(mime):
        return metadata
    if not isinstance(text, str) or not text:
        return metadata

    payload = _decode_base64_text(text)
    if payload is None:
        return metadata

    filename = f"{hashlib.sha256(title.encode('utf-8')).hexdigest()}.{mime_to_ext(mime)}"
    try:
        # the name is derived from the title, so a re-upload replaces that title's own file
        stored = local_store.store(payload, filename, replace=True)
    except (OSError, AppException) as exc:
        logger.error("Failed to write file to disk for %r: %s", title, exc)
        return metadata

    offloaded = dict(metadata)
    offloaded["text"] = ""
    offloaded.update(descriptor_fields(LocalAttachment(path=stored.path), stored.canonical_uri))
    logger.info("Offloaded binary file for %r to %s", title, stored.path)
    return offloaded


async def put_document(*, title: str, metadata: dict[str, Any]) -> DocumentWriteResult:
    if not title:
        raise validation_failed("Document title must not be empty")

    storage = AttachmentStorageManager.get_instance()
    metadata = await run_in_threadpool(offload_binary_attachment, title, metadata, storage.local_store)

    store = DocumentStoreManager.get_instance().store
    revision = await store.put(title, metadata)
    return DocumentWriteResult(title=title, revision=revision)


async def fetch_document(title: str) -> DocumentOut:
    doc = await DocumentStoreManager.get_instance().store.get(title)
    if doc is None:
        raise resource_not_found("Document", title)
    return doc


async def list_documents(prefix: str | None = None) -> list[DocumentSummary]:
    store = DocumentStoreManager.get_instance().store
    predicate = (lambda summary: summary.title.startswith(prefix)) if prefix else None
    return [summary async for summary in store.list(predicate)]


async def remove_document(title: str) -> DocumentDeleteResult:
    store = DocumentStoreManager.get_instance().store
    prior_metadata = await store.delete(title)
    if prior_metadata is None:
        raise resource_not_found("Document", title)
    logger.info("Deleted document: %s", title)

    cascade = AttachmentStorageManager.get_instance().cascade
    result = await run_in_threadpool(cascade.on_delete, prior_metadata, title=title)
    return DocumentDeleteResult(
        title=title,
        attachment=AttachmentDeleteReport(kind=result.descriptor.kind, outcome=result.outcome.value),
    )
