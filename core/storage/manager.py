from __future__ import annotations

import logging
from threading import Lock

from core.errors import storage_not_configured
from core.settings import Settings, get_settings
from core.storage.cascade import CascadeDeleteOrchestrator
from core.storage.local_provider import LocalAttachmentStore
from core.storage.s3_provider import ObjectStorageClient
from core.storage.uploads import PresignedUploadCoordinator

logger = logging.getLogger(__name__)


class AttachmentStorageManager:
    _instance: "AttachmentStorageManager | None" = None
    _lock = Lock()

    def __init__(
        self,
        *,
        local_store: LocalAttachmentStore,
        object_storage: ObjectStorageClient | None,
        uploads: PresignedUploadCoordinator,
    ) -> None:
        self._local_store = local_store
        self._object_storage = object_storage
        self._uploads = uploads
        self._cascade = CascadeDeleteOrchestrator(local_store=local_store, object_storage=object_storage)

    @classmethod
    def configure(cls, manager: "AttachmentStorageManager") -> "AttachmentStorageManager":
        with cls._lock:
            cls._instance = manager
            return cls._instance

    @classmethod
    def from_settings(cls, settings: Settings) -> "AttachmentStorageManager":
        object_storage: ObjectStorageClient | None = None
        if settings.s3_enable:
            if not (settings.s3_access_key and settings.s3_secret_key):
                raise storage_not_configured("S3_ACCESS_KEY and S3_SECRET_KEY are required when S3_ENABLE=true")
            object_storage = ObjectStorageClient(
                access_key=settings.s3_access_key,
                secret_key=settings.s3_secret_key,
                endpoint_url=settings.s3_endpoint_url,
                timeout_seconds=settings.s3_request_timeout_seconds,
            )
            logger.info("S3 client initialized for bucket: %s", settings.s3_bucket_name)
        else:
            logger.warning("S3 integration is disabled in config")

        return cls(
            local_store=LocalAttachmentStore(root_dir=settings.storage_local_root),
            object_storage=object_storage,
            uploads=PresignedUploadCoordinator(
                client=object_storage,
                bucket_name=settings.s3_bucket_name,
                region=settings.s3_region,
                provider_name=settings.s3_name,
                public_url_base=settings.s3_public_url_base,
                key_prefix=settings.s3_key_prefix,
                ttl_seconds=settings.s3_presign_ttl_seconds,
            ),
        )

    @classmethod
    def configure_from_settings(cls) -> "AttachmentStorageManager":
        return cls.configure(cls.from_settings(get_settings()))

    @classmethod
    def get_instance(cls) -> "AttachmentStorageManager":
        if cls._instance is None:
            return cls.configure_from_settings()
        return cls._instance

    @property
    def local_store(self) -> LocalAttachmentStore:
        return self._local_store

    @property
    def object_storage(self) -> ObjectStorageClient | None:
        return self._object_storage

    @property
    def uploads(self) -> PresignedUploadCoordinator:
        return self._uploads

    @property
    def cascade(self) -> CascadeDeleteOrchestrator:
        return self._cascade
