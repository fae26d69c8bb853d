from __future__ import annotations

from fastapi import FastAPI, HTTPException, Request
from fastapi.testclient import TestClient

from api.v1 import documents_route, uploads_route
from core.errors import resource_not_found, storage_not_configured
from core.response_envelope import http_exception_response
from schemas.document_schema import (
    AttachmentDeleteReport,
    DocumentDeleteResult,
    DocumentOut,
    DocumentSummary,
    DocumentWriteResult,
    UploadSignResponse,
)


def _build_app() -> FastAPI:
    app = FastAPI()
    app.include_router(documents_route.router, prefix="/v1")
    app.include_router(uploads_route.router, prefix="/v1")

    @app.middleware("http")
    async def _tag_request(request: Request, call_next):
        request.state.request_id = request.headers.get("X-Request-ID")
        return await call_next(request)

    @app.exception_handler(HTTPException)
    async def _http_exception_handler(request: Request, exc: HTTPException):
        return http_exception_response(exc, request)

    return app


def test_put_route_returns_revision_and_etag(monkeypatch):
    calls: list[dict] = []

    async def _stub_put_document(*, title: str, metadata: dict):
        calls.append({"title": title, "metadata": metadata})
        return DocumentWriteResult(title=title, revision=4)

    monkeypatch.setattr(documents_route, "put_document", _stub_put_document)
    client = TestClient(_build_app())

    response = client.put("/v1/documents/$:/config/theme", json={"text": "dark", "tags": "[[a b]]"})
    assert response.status_code == 200

    payload = response.json()
    assert payload["success"] is True
    assert payload["data"] == {"title": "$:/config/theme", "revision": 4}
    assert response.headers["etag"] == '"default/%24%3A%2Fconfig%2Ftheme/4:"'
    assert calls == [{"title": "$:/config/theme", "metadata": {"text": "dark", "tags": "[[a b]]"}}]


def test_put_route_rejects_non_object_body():
    client = TestClient(_build_app())

    response = client.put("/v1/documents/Note", json=["not", "an", "object"])

    assert response.status_code == 422


def test_get_route_returns_document(monkeypatch):
    async def _stub_fetch_document(title: str):
        return DocumentOut(title=title, revision=2, metadata={"text": "hi"})

    monkeypatch.setattr(documents_route, "fetch_document", _stub_fetch_document)
    client = TestClient(_build_app())

    response = client.get("/v1/documents/Getting Started")
    assert response.status_code == 200
    assert response.json()["data"] == {"title": "Getting Started", "revision": 2, "metadata": {"text": "hi"}}


def test_get_route_maps_missing_document_to_404(monkeypatch):
    async def _stub_fetch_document(title: str):
        raise resource_not_found("Document", title)

    monkeypatch.setattr(documents_route, "fetch_document", _stub_fetch_document)
    client = TestClient(_build_app())

    response = client.get("/v1/documents/Nope")
    assert response.status_code == 404

    payload = response.json()
    assert payload["success"] is False
    assert payload["data"]["code"] == "RESOURCE_NOT_FOUND"


def test_list_route_passes_prefix(monkeypatch):
    seen: list = []

    async def _stub_list_documents(prefix: str | None = None):
        seen.append(prefix)
        return [DocumentSummary(title="$:/config/theme", revision=0)]

    monkeypatch.setattr(documents_route, "list_documents", _stub_list_documents)
    client = TestClient(_build_app())

    response = client.get("/v1/documents", params={"prefix": "$:/config/"})
    assert response.status_code == 200
    assert response.json()["data"] == [{"title": "$:/config/theme", "revision": 0}]
    assert seen == ["$:/config/"]


def test_delete_route_reports_attachment_outcome(monkeypatch):
    async def _stub_remove_document(title: str):
        return DocumentDeleteResult(
            title=title,
            attachment=AttachmentDeleteReport(kind="remote", outcome="timeout"),
        )

    monkeypatch.setattr(documents_route, "remove_document", _stub_remove_document)
    client = TestClient(_build_app())

    response = client.delete("/v1/documents/cat.png")
    assert response.status_code == 200
    assert response.json()["data"] == {
        "deleted": True,
        "title": "cat.png",
        "attachment": {"kind": "remote", "outcome": "timeout"},
    }


def test_sign_upload_route_returns_presigned_location(monkeypatch):
    async def _stub_create_signed_upload(payload):
        assert payload.filename == "cat.png"
        assert payload.content_type == "image/png"
        return UploadSignResponse(
            upload_url="https://s3.example.com/wiki/tiddlers/abc.png?signed",
            key="tiddlers/abc.png",
            bucket="wiki",
            region="us-east-1",
            name="minio",
            public_url="https://cdn.example.com/tiddlers/abc.png",
            expires_in=300,
        )

    monkeypatch.setattr(uploads_route, "create_signed_upload", _stub_create_signed_upload)
    client = TestClient(_build_app())

    response = client.get("/v1/uploads/sign", params={"filename": "cat.png", "content_type": "image/png"})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["key"] == "tiddlers/abc.png"
    assert data["expires_in"] == 300


def test_sign_upload_route_requires_filename_and_content_type():
    client = TestClient(_build_app())

    response = client.get("/v1/uploads/sign", params={"filename": "cat.png"})

    assert response.status_code == 422


def test_sign_upload_route_when_remote_storage_disabled(monkeypatch):
    async def _stub_create_signed_upload(payload):
        raise storage_not_configured("S3 integration is disabled")

    monkeypatch.setattr(uploads_route, "create_signed_upload", _stub_create_signed_upload)
    client = TestClient(_build_app())

    response = client.get("/v1/uploads/sign", params={"filename": "cat.png", "content_type": "image/png"})
    assert response.status_code == 503
    assert response.json()["data"]["code"] == "STORAGE_NOT_CONFIGURED"


def test_read_and_delete_routes_echo_request_id(monkeypatch):
    async def _stub_fetch_document(title: str):
        return DocumentOut(title=title, revision=0, metadata={})

    async def _stub_list_documents(prefix: str | None = None):
        return []

    async def _stub_remove_document(title: str):
        return DocumentDeleteResult(title=title, attachment=AttachmentDeleteReport(kind="none", outcome="skipped"))

    monkeypatch.setattr(documents_route, "fetch_document", _stub_fetch_document)
    monkeypatch.setattr(documents_route, "list_documents", _stub_list_documents)
    monkeypatch.setattr(documents_route, "remove_document", _stub_remove_document)
    client = TestClient(_build_app())
    headers = {"X-Request-ID": "req-42"}

    assert client.get("/v1/documents/Note", headers=headers).json()["requestId"] == "req-42"
    assert client.get("/v1/documents", headers=headers).json()["requestId"] == "req-42"
    assert client.delete("/v1/documents/Note", headers=headers).json()["requestId"] == "req-42"
