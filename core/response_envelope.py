from __future__ import annotations

import inspect
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.responses import Response

_RESPONSE_DOC_ATTR = "__response_doc_config__"
_FALLBACK_ERROR_CODE = "HTTP_EXCEPTION"


@dataclass(frozen=True)
class ResponseDocConfig:
    message: str
    status_code: int
    description: str
    success_example: Any | None = None
    response_codes: dict[int, str] | None = None


def _envelope(success: bool, message: str, data: Any, request_id: str | None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": success, "message": message, "data": data}
    if request_id:
        body["requestId"] = request_id
    return body


def success_payload(data: Any, message: str = "Success", *, request_id: str | None = None) -> dict[str, Any]:
    return _envelope(True, message, data, request_id)


def error_payload(message: str, data: Any = None, *, request_id: str | None = None) -> dict[str, Any]:
    return _envelope(False, message, data, request_id)


def _json(status_code: int, body: dict[str, Any], headers: dict[str, str] | None) -> JSONResponse:
    return JSONResponse(status_code=status_code, headers=headers, content=jsonable_encoder(body))


def success_response(
    data: Any,
    *,
    message: str = "Success",
    status_code: int = status.HTTP_200_OK,
    headers: dict[str, str] | None = None,
    request_id: str | None = None,
) -> JSONResponse:
    return _json(status_code, success_payload(data, message, request_id=request_id), headers)


def error_response(
    *,
    status_code: int,
    message: str,
    data: Any = None,
    headers: dict[str, str] | None = None,
    request_id: str | None = None,
) -> JSONResponse:
    return _json(status_code, error_payload(message, data, request_id=request_id), headers)


def _error_body(detail: Any) -> tuple[str, dict[str, Any]]:
    """Split an HTTPException detail into the envelope message and ``{code, details}``."""
    if isinstance(detail, dict):
        message = detail.get("message")
        if isinstance(message, str) and message.strip():
            return message, {"code": detail.get("code", _FALLBACK_ERROR_CODE), "details": detail.get("details")}
        return "Request failed", {"code": _FALLBACK_ERROR_CODE, "details": detail}
    if detail is None:
        return "Request failed", {"code": _FALLBACK_ERROR_CODE, "details": None}
    return str(detail), {"code": _FALLBACK_ERROR_CODE, "details": None}


def request_id_from_request(request: Request | None) -> str | None:
    if request is None:
        return None
    return getattr(request.state, "request_id", None)


def http_exception_response(exc: HTTPException, request: Request | None = None) -> JSONResponse:
    message, data = _error_body(exc.detail)
    return error_response(
        status_code=exc.status_code,
        message=message,
        data=data,
        headers=exc.headers,
        request_id=request_id_from_request(request),
    )


def document_response(
    *,
    message: str = "Success",
    status_code: int = status.HTTP_200_OK,
    description: str = "Successful response",
    success_example: Any | None = None,
    response_codes: dict[int, str] | None = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Wrap a route's return value in the success envelope.

    Routes that already return a ``Response`` (e.g. to set an Etag) pass
    through untouched. The config is attached to the wrapper so
    ``apply_response_documentation`` can add it to the OpenAPI schema.
    """
    config = ResponseDocConfig(
        message=message,
        status_code=status_code,
        description=description,
        success_example=success_example,
        response_codes=response_codes,
    )

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Response:
            result = func(*args, **kwargs)
            if inspect.isawaitable(result):
                result = await result
            if isinstance(result, Response):
                return result

            request = next((v for v in (*kwargs.values(), *args) if isinstance(v, Request)), None)
            return success_response(
                result,
                message=message,
                status_code=status_code,
                request_id=request_id_from_request(request),
            )

        setattr(wrapper, _RESPONSE_DOC_ATTR, config)
        return wrapper

    return decorator


def apply_response_documentation(app: FastAPI) -> None:
    documented: list[tuple[APIRoute, ResponseDocConfig]] = []
    for route in app.routes:
        if not isinstance(route, APIRoute):
            continue
        config = getattr(route.endpoint, _RESPONSE_DOC_ATTR, None)
        if isinstance(config, ResponseDocConfig):
            documented.append((route, config))

    for route, config in documented:
        route.status_code = config.status_code
        responses = dict(route.responses or {})
        responses.setdefault(
            config.status_code,
            {
                "description": config.description,
                "content": {
                    "application/json": {
                        "example": success_payload(config.success_example, config.message),
                    }
                },
            },
        )
        for code, code_description in (config.response_codes or {}).items():
            responses.setdefault(code, {"description": code_description})
        route.responses = responses

    if documented:
        app.openapi_schema = None
