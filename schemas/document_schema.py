from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class DocumentOut(BaseModel):
    title: str
    revision: int = Field(ge=0)
    metadata: dict[str, Any]


class DocumentSummary(BaseModel):
    title: str
    revision: int = Field(ge=0)


class DocumentWriteResult(BaseModel):
    title: str
    revision: int = Field(ge=0)


class AttachmentDeleteReport(BaseModel):
    kind: str
    outcome: str


class DocumentDeleteResult(BaseModel):
    deleted: bool = True
    title: str
    attachment: AttachmentDeleteReport


class UploadSignRequest(BaseModel):
    filename: str = Field(min_length=1)
    content_type: str = Field(min_length=1)


class UploadSignResponse(BaseModel):
    upload_url: str
    key: str
    bucket: str
    region: str
    name: str
    public_url: str
    expires_in: int
