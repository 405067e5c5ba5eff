import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.datastructures import UploadFile

from ocr_gateway.core.errors import GatewayError, InvalidJSONError, PayloadTooLargeError, UploadError
from ocr_gateway.schemas.requests import OCRRequest
from ocr_gateway.schemas.responses import ErrorResponse, HealthResponse, OCRResponse
from ocr_gateway.services.image_source import UploadedImage

router = APIRouter(prefix="/api/ocr", tags=["OCR"])
health_router = APIRouter(tags=["Health"])

MAX_JSON_BODY_BYTES = 1024 * 1024
# Marge pour les délimiteurs multipart et les petits champs texte
FORM_OVERHEAD_BYTES = 64 * 1024
FORM_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")
FORM_BOOLEANS = {"true": True, "false": False}


def _media_type(request: Request) -> str:
    return request.headers.get("content-type", "").split(";")[0].strip().lower()


def _is_json(media_type: str) -> bool:
    return media_type == "application/json" or media_type.endswith("+json")


async def _read_limited(request: Request, limit: int, error: GatewayError) -> bytes:
    """
    Read the request body, stopping as soon as it goes over `limit` bytes.

    A declared Content-Length above the limit is rejected before reading.
    """
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        raise error

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise error
    return bytes(body)


def _replay(body: bytes):
    sent = False

    async def receive():
        nonlocal sent
        if sent:
            return {"type": "http.disconnect"}
        sent = True
        return {"type": "http.request", "body": body, "more_body": False}

    return receive


async def _read_json_body(request: Request) -> Any:
    raw = await _read_limited(request, MAX_JSON_BODY_BYTES, PayloadTooLargeError(MAX_JSON_BODY_BYTES))
    if not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidJSONError()


async def _read_upload(file: UploadFile, max_size_bytes: int) -> UploadedImage:
    """Enforce the upload constraints before anything reaches the pipeline"""
    mime_type = file.content_type or ""
    if not mime_type.startswith("image/"):
        raise UploadError(UploadError.UNSUPPORTED_TYPE, "Only image files are allowed")

    content = await file.read(max_size_bytes + 1)
    if len(content) > max_size_bytes:
        raise UploadError(UploadError.TOO_LARGE, "File too large")

    return UploadedImage(
        content=content,
        mime_type=mime_type,
        size_bytes=len(content),
        file_name=file.filename or "",
    )


async def _read_form(request: Request, max_size_bytes: int) -> Tuple[Dict[str, Any], Optional[UploadedImage]]:
    raw = await _read_limited(
        request,
        max_size_bytes + FORM_OVERHEAD_BYTES,
        UploadError(UploadError.TOO_LARGE, "File too large"),
    )
    form = await Request(request.scope, _replay(raw)).form()
    try:
        body: Dict[str, Any] = {}
        files = []
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                if key != "file" or files:
                    raise UploadError(
                        UploadError.UNEXPECTED_FILE,
                        'Only one file is accepted, in the field named "file"',
                    )
                files.append(value)
            else:
                # Les champs de formulaire sont des chaînes : seuls true/false deviennent des booléens
                body[key] = FORM_BOOLEANS.get(value, value)

        upload = await _read_upload(files[0], max_size_bytes) if files else None
        return body, upload
    finally:
        await form.close()


@router.post(
    "/extract-text",
    response_model=OCRResponse,
    responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    openapi_extra={
        "requestBody": {
            "content": {
                "application/json": {"schema": OCRRequest.model_json_schema(by_alias=True)},
                "multipart/form-data": {
                    "schema": {
                        "type": "object",
                        "properties": {"file": {"type": "string", "format": "binary"}},
                    }
                },
            }
        }
    },
    description="Extract text from an image given by URL or uploaded as multipart field 'file'",
)
async def extract_text(request: Request):
    """
    Run OCR on one image.

    Accepts a JSON body, a multipart form (field `file` plus optional text
    fields), or both.
    """
    settings = request.app.state.settings
    ocr_service = request.app.state.ocr_service

    media_type = _media_type(request)
    upload = None
    if media_type in FORM_TYPES:
        body, upload = await _read_form(request, settings.max_upload_size_bytes)
    elif _is_json(media_type):
        body = await _read_json_body(request)
    else:
        # Corps non JSON : ignoré, comme un corps vide
        body = {}

    if upload is not None:
        logger.info(f"Received upload {upload.file_name!r} ({upload.mime_type}, {upload.size_bytes} bytes)")

    result = await ocr_service.extract_text(body, upload)
    # Réponse renvoyée telle quelle : les clés absentes doivent rester absentes
    return JSONResponse(status_code=200, content=result)


@health_router.get("/health", response_model=HealthResponse, description="Health check endpoint")
async def health_check():
    """Check service health"""
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
