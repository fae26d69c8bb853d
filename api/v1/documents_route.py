from __future__ import annotations

from typing import Any
from urllib.parse import quote

from fastapi import APIRouter, Body, Query, Request

from core.response_envelope import document_response, request_id_from_request, success_response
from services.document_service import fetch_document, list_documents, put_document, remove_document

router = APIRouter(prefix="/documents", tags=["Documents"])


def _etag(title: str, revision: int) -> str:
    return f'"default/{quote(title, safe="")}/{revision}:"'


@router.get("")
@document_response(
    message="Documents listed",
    success_example=[{"title": "GettingStarted", "revision": 3}],
)
async def list_all_documents(request: Request, prefix: str | None = Query(default=None)):
    return await list_documents(prefix=prefix)


@router.put("/{title:path}")
@document_response(message="Document saved", response_codes={400: "Invalid title", 422: "Body must be a JSON object"})
async def save_document(request: Request, title: str, payload: dict[str, Any] = Body(...)):
    result = await put_document(title=title, metadata=payload)
    return success_response(
        result,
        message="Document saved",
        headers={"Etag": _etag(title, result.revision)},
        request_id=request_id_from_request(request),
    )


@router.get("/{title:path}")
@document_response(message="Document fetched", response_codes={404: "Document not found"})
async def get_document(request: Request, title: str):
    return await fetch_document(title)


@router.delete("/{title:path}")
@document_response(
    message="Document deleted",
    success_example={"deleted": True, "title": "cat.png", "attachment": {"kind": "remote", "outcome": "deleted"}},
    response_codes={404: "Document not found"},
)
async def delete_document(request: Request, title: str):
    return await remove_document(title)
