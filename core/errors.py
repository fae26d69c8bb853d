from __future__ import annotations

from enum import Enum
from typing import Any

from fastapi import HTTPException, status


class ErrorCode(str, Enum):
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    STORAGE_NOT_CONFIGURED = "STORAGE_NOT_CONFIGURED"
    STORAGE_BACKEND_UNAVAILABLE = "STORAGE_BACKEND_UNAVAILABLE"
    STORAGE_BACKEND_TIMEOUT = "STORAGE_BACKEND_TIMEOUT"


class AppException(HTTPException):
    def __init__(
        self,
        *,
        status_code: int,
        code: ErrorCode,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        detail = {
            "message": message,
            "code": code.value,
            "details": details,
        }
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.code = code


def resource_not_found(resource: str, resource_id: str | None = None) -> AppException:
    details = {"resource": resource}
    if resource_id:
        details["resource_id"] = resource_id
    return AppException(
        status_code=status.HTTP_404_NOT_FOUND,
        code=ErrorCode.RESOURCE_NOT_FOUND,
        message=f"{resource} not found",
        details=details,
    )


def validation_failed(message: str, details: Any | None = None) -> AppException:
    return AppException(
        status_code=status.HTTP_400_BAD_REQUEST,
        code=ErrorCode.VALIDATION_FAILED,
        message=message,
        details=details,
    )


def storage_not_configured(reason: str) -> AppException:
    return AppException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        code=ErrorCode.STORAGE_NOT_CONFIGURED,
        message="Remote storage is not available",
        details={"reason": reason},
    )


def storage_backend_unavailable(backend: str, reason: str | None = None) -> AppException:
    return AppException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        code=ErrorCode.STORAGE_BACKEND_UNAVAILABLE,
        message=f"{backend} storage backend is unavailable",
        details={"backend": backend, "reason": reason},
    )


def storage_backend_timeout(backend: str) -> AppException:
    return AppException(
        status_code=status.HTTP_504_GATEWAY_TIMEOUT,
        code=ErrorCode.STORAGE_BACKEND_TIMEOUT,
        message=f"{backend} storage backend timed out",
        details={"backend": backend},
    )
