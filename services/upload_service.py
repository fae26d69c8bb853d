from __future__ import annotations

from starlette.concurrency import run_in_threadpool

from core.storage import AttachmentStorageManager
from schemas.document_schema import UploadSignRequest, UploadSignResponse


async def create_signed_upload(payload: UploadSignRequest) -> UploadSignResponse:
    uploads = AttachmentStorageManager.get_instance().uploads
    signed = await run_in_threadpool(
        uploads.request_upload, filename=payload.filename, content_type=payload.content_type
    )
    return UploadSignResponse(
        upload_url=signed.upload_url,
        key=signed.key,
        bucket=signed.bucket,
        region=signed.region,
        name=signed.provider_name,
        public_url=signed.public_url,
        expires_in=signed.expires_in,
    )
