import json
import math
from http import HTTPStatus
from typing import Any, Dict, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from ocr_gateway.core.errors import (
    BodyValidationError,
    GatewayError,
    InvalidJSONError,
    MissingImageError,
    UploadError,
    VisionResponseError,
    VisionTransportError,
)

Envelope = Dict[str, Any]


def _envelope(code: str, message: str, details: Any = None) -> Envelope:
    envelope = {"code": code, "message": message}
    if details is not None:
        envelope["details"] = details
    return envelope


def _status_code_name(status: int) -> str:
    try:
        return HTTPStatus(status).name
    except ValueError:
        return "HTTP_ERROR"


def resolve_error(
    exc: BaseException,
    max_upload_size_bytes: int,
    response_started: bool = False,
) -> Optional[Tuple[int, Envelope]]:
    """
    Map any failure to (status, envelope).

    Checks run in a fixed order, first match wins. Returns None when the
    response has already started: nothing more can be sent to the client.
    """
    if response_started:
        return None

    if isinstance(exc, (InvalidJSONError, json.JSONDecodeError)):
        return 400, _envelope("INVALID_JSON", "Request body contains invalid JSON")

    if isinstance(exc, UploadError) and exc.reason == UploadError.TOO_LARGE:
        max_mb = math.floor(max_upload_size_bytes / (1024 * 1024) + 0.5)
        return 413, _envelope(
            "FILE_TOO_LARGE",
            f"Uploaded file is too large. Max allowed size is {max_mb} MB.",
        )

    if isinstance(exc, UploadError) and exc.reason == UploadError.UNSUPPORTED_TYPE:
        return 400, _envelope("UNSUPPORTED_MEDIA_TYPE", "Only image/* content types are supported")

    if isinstance(exc, BodyValidationError):
        return 400, _envelope(exc.code, exc.public_message, exc.errors)

    if isinstance(exc, MissingImageError):
        return 400, _envelope(exc.code, exc.public_message)

    if isinstance(exc, VisionTransportError):
        return 502, _envelope(exc.code, exc.public_message)

    if isinstance(exc, VisionResponseError):
        return exc.status_code or 502, _envelope(
            exc.code or "AZURE_VISION_ERROR", exc.public_message, exc.details
        )

    if isinstance(exc, GatewayError):
        return exc.status_code, _envelope(exc.code, exc.public_message, exc.details)

    if isinstance(exc, StarletteHTTPException):
        return exc.status_code, _envelope(_status_code_name(exc.status_code), str(exc.detail))

    return 500, _envelope("INTERNAL_SERVER_ERROR", "Internal server error")


def not_found_envelope(request: Request) -> Envelope:
    path = request.url.path
    if request.url.query:
        path = f"{path}?{request.url.query}"
    return _envelope("NOT_FOUND", f"Route {request.method} {path} not found")


def register_exception_handlers(app: FastAPI, max_upload_size_bytes: int) -> None:
    """Every failure ends up here and leaves as one {"error": ...} JSON body"""

    def render(request: Request, exc: Exception) -> JSONResponse:
        status, envelope = resolve_error(exc, max_upload_size_bytes)
        if status >= 500:
            logger.opt(exception=exc).error(
                f"{request.method} {request.url.path} failed: {envelope['code']}"
            )
        else:
            logger.warning(
                f"{request.method} {request.url.path} rejected: {status} {envelope['code']}"
            )
        return JSONResponse(status_code=status, content={"error": envelope})

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        return render(request, exc)

    # Une méthode non routée est traitée comme une route inconnue
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (404, 405):
            return JSONResponse(status_code=404, content={"error": not_found_envelope(request)})
        return render(request, exc)

    # Starlette re-raises by itself when the response has already started
    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        return render(request, exc)
