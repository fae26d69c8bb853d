"""Remove a deleted document's attachment from whichever backend holds it.

The document row is already gone by the time ``on_delete`` runs. Backend
failures are logged and returned, never raised, so a committed document
deletion is never reported as failed. A failure here leaves an orphaned
blob; nothing retries it.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from core.storage.local_provider import LocalAttachmentStore
from core.storage.resolver import classify
from core.storage.s3_provider import ObjectStorageClient
from core.storage.types import CascadeResult, DeleteOutcome, LocalAttachment, RemoteAttachment

logger = logging.getLogger(__name__)


class CascadeDeleteOrchestrator:
    def __init__(
        self,
        *,
        local_store: LocalAttachmentStore,
        object_storage: ObjectStorageClient | None = None,
    ) -> None:
        self._local_store = local_store
        self._object_storage = object_storage

    def on_delete(self, prior_metadata: Mapping[str, Any] | None, *, title: str | None = None) -> CascadeResult:
        descriptor = classify(prior_metadata)

        if isinstance(descriptor, LocalAttachment):
            outcome = self._delete_local(descriptor)
        elif isinstance(descriptor, RemoteAttachment):
            outcome = self._delete_remote(descriptor)
        else:
            return CascadeResult(descriptor=descriptor, outcome=DeleteOutcome.SKIPPED)

        self._report(title, descriptor, outcome)
        return CascadeResult(descriptor=descriptor, outcome=outcome)

    def _delete_local(self, descriptor: LocalAttachment) -> DeleteOutcome:
        try:
            return self._local_store.delete(descriptor.path)
        except Exception:
            logger.exception("Unexpected error deleting local attachment %s", descriptor.path)
            return DeleteOutcome.UNAVAILABLE

    def _delete_remote(self, descriptor: RemoteAttachment) -> DeleteOutcome:
        if self._object_storage is None:
            return DeleteOutcome.UNAVAILABLE
        try:
            return self._object_storage.delete(
                bucket=descriptor.bucket,
                key=descriptor.key,
                region=descriptor.region,
            )
        except Exception:
            logger.exception("Unexpected error deleting S3 object %s/%s", descriptor.bucket, descriptor.key)
            return DeleteOutcome.UNAVAILABLE

    def _report(self, title: str | None, descriptor: LocalAttachment | RemoteAttachment, outcome: DeleteOutcome) -> None:
        target = (
            f"local:{descriptor.path}"
            if isinstance(descriptor, LocalAttachment)
            else f"s3:{descriptor.bucket}/{descriptor.key}"
        )
        if outcome is DeleteOutcome.DELETED:
            logger.info("Cascade delete for %r removed %s", title, target)
        elif outcome is DeleteOutcome.NOT_FOUND:
            logger.info("Cascade delete for %r: %s was already gone", title, target)
        elif outcome is DeleteOutcome.TIMEOUT:
            logger.warning("Cascade delete for %r timed out on %s; blob left orphaned", title, target)
        elif outcome is DeleteOutcome.AUTH_FAILED:
            logger.warning("Cascade delete for %r was rejected by %s (credentials); blob left orphaned", title, target)
        elif isinstance(descriptor, RemoteAttachment) and self._object_storage is None:
            logger.warning("Cascade delete for %r skipped %s: remote storage is disabled", title, target)
        else:
            logger.warning("Cascade delete for %r failed on %s; blob left orphaned", title, target)
