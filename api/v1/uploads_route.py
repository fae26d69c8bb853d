from __future__ import annotations

from fastapi import APIRouter, Query, Request

from core.response_envelope import document_response
from schemas.document_schema import UploadSignRequest
from services.upload_service import create_signed_upload

router = APIRouter(prefix="/uploads", tags=["Uploads"])


@router.get("/sign")
@document_response(
    message="Upload URL signed",
    response_codes={422: "filename and content_type are required", 503: "Remote storage is not configured"},
)
async def sign_upload(
    request: Request,
    filename: str = Query(min_length=1),
    content_type: str = Query(min_length=1),
):
    return await create_signed_upload(UploadSignRequest(filename=filename, content_type=content_type))
