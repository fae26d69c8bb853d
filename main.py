from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.middleware.base import BaseHTTPMiddleware

from api.v1.documents_route import router as documents_router
from api.v1.uploads_route import router as uploads_router
from core.database import DocumentStoreManager
from core.errors import ErrorCode
from core.response_envelope import (
    apply_response_documentation,
    document_response,
    error_response,
    http_exception_response,
    request_id_from_request,
)
from core.settings import get_settings
from core.storage.manager import AttachmentStorageManager

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id and reports how long it took."""

    async def dispatch(self, request: Request, call_next):
        request.state.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started

        response.headers["X-Request-ID"] = request.state.request_id
        response.headers["X-Process-Time"] = f"{elapsed:.6f}"
        logger.debug(
            "%s %s -> %d in %.1fms [%s]",
            request.method,
            request.url.path,
            response.status_code,
            elapsed * 1000,
            request.state.request_id,
        )
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    storage = AttachmentStorageManager.configure_from_settings()
    documents = DocumentStoreManager.configure_from_settings()
    await documents.store.initialize()
    logger.info("Serving local attachments from %s", storage.local_store.root)

    try:
        yield
    finally:
        await documents.store.close()
        logger.info("Document store closed")


app = FastAPI(lifespan=lifespan, title="Tiddler Vault")
app.add_middleware(RequestContextMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins) or ["http://localhost:8080"],
    allow_credentials=True,
    allow_methods=["GET", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["Etag", "X-Request-ID"],
)
# uploaded attachments are written under this root and referenced as /files/<name>
app.mount("/files", StaticFiles(directory=settings.storage_local_root, check_dir=False), name="files")


@app.exception_handler(HTTPException)
async def handle_http_exception(request: Request, exc: HTTPException):
    return http_exception_response(exc, request)


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    return error_response(
        status_code=422,
        message="Request validation failed",
        data={"code": ErrorCode.VALIDATION_FAILED.value, "details": exc.errors()},
        request_id=request_id_from_request(request),
    )


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    expose = settings.debug_include_error_details and not settings.is_production
    return error_response(
        status_code=500,
        message="Internal Server Error",
        data={"code": ErrorCode.INTERNAL_ERROR.value, "details": str(exc) if expose else None},
        request_id=request_id_from_request(request),
    )


async def _document_store_health() -> dict[str, str | float]:
    started = time.perf_counter()
    try:
        await DocumentStoreManager.get_instance().store.ping()
    except Exception as exc:
        logger.warning("Document store ping failed: %s", exc)
        return {
            "status": "unhealthy",
            "latency_ms": round((time.perf_counter() - started) * 1000, 2),
            "message": str(exc),
        }
    return {
        "status": "healthy",
        "latency_ms": round((time.perf_counter() - started) * 1000, 2),
        "message": f"{settings.db_type} reachable",
    }


def _object_storage_health() -> dict[str, str | float]:
    uploads = AttachmentStorageManager.get_instance().uploads
    return {"status": "enabled" if uploads.enabled else "disabled", "message": settings.s3_name}


@app.get("/health", tags=["Health"])
@document_response(
    message="Health check completed",
    success_example={
        "status": "healthy",
        "services": {"documents": {"status": "healthy"}, "object_storage": {"status": "disabled"}},
    },
)
async def health_check(request: Request):
    services = {
        "documents": await _document_store_health(),
        "object_storage": _object_storage_health(),
    }
    return {
        "status": "healthy" if services["documents"]["status"] == "healthy" else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": services,
    }


app.include_router(documents_router, prefix="/v1")
app.include_router(uploads_router, prefix="/v1")

apply_response_documentation(app)
