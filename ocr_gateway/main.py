import sys
import time
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from ocr_gateway.api.errors import register_exception_handlers
from ocr_gateway.api.routes import health_router, router
from ocr_gateway.core.config import Settings, load_settings
from ocr_gateway.services.ocr import OCRService
from ocr_gateway.services.vision_service import VisionService

# Niveaux loguru sans équivalent uvicorn (SUCCESS) retombent sur info
UVICORN_LEVELS = {
    "TRACE": "trace",
    "DEBUG": "debug",
    "INFO": "info",
    "WARNING": "warning",
    "ERROR": "error",
    "CRITICAL": "critical",
}

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Resource-Policy": "same-origin",
}


def configure_logging(settings: Settings) -> None:
    # Configuration des logs avec rotation et rétention
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)
    if settings.log_file:
        logger.add(
            settings.log_file,
            rotation="100 MB",
            retention="7 days",
            compression="zip",
            level=settings.log_level,
            backtrace=True,
            diagnose=False,
        )


def create_app(
    settings: Optional[Settings] = None,
    vision_service: Optional[VisionService] = None,
) -> FastAPI:
    """
    Build the gateway application.

    :param settings: defaults to load_settings() (exits on invalid config)
    :param vision_service: engine client, built from settings when omitted
    """
    settings = settings or load_settings()
    configure_logging(settings)

    if vision_service is None:
        vision_service = VisionService(
            endpoint=settings.vision_endpoint,
            key=settings.vision_key,
            api_version=settings.vision_api_version,
            timeout=settings.vision_timeout_seconds,
        )

    app = FastAPI(
        title="OCR Gateway",
        description="Extract text from images with Azure AI Vision (Read)",
        version="1.0.0",
    )
    app.state.settings = settings
    app.state.ocr_service = OCRService(vision_service)

    register_exception_handlers(app, settings.max_upload_size_bytes)

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        elapsed_ms = (time.time() - start_time) * 1000
        logger.info(
            f"{request.client.host if request.client else '-'} "
            f"\"{request.method} {request.url.path}\" {response.status_code} {elapsed_ms:.1f}ms"
        )
        return response

    # Active CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(router)

    logger.info("Application startup complete")
    return app


def run() -> None:
    settings = load_settings()
    logger.info(f"OCR gateway listening on port {settings.port}")
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=UVICORN_LEVELS.get(settings.log_level, "info"),
        access_log=False,
        timeout_keep_alive=5,
    )


if __name__ == "__main__":
    run()
