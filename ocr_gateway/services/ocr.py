from typing import Any, Dict, Optional

from loguru import logger

from ocr_gateway.schemas.requests import parse_ocr_request
from ocr_gateway.services.image_source import UploadedImage, resolve_image_source
from ocr_gateway.services.read_result import normalize_analysis
from ocr_gateway.services.vision_service import VisionService


class OCRService:
    """
    Text extraction pipeline: validate -> resolve source -> Vision AI -> normalize.

    The Vision client is injected so tests can swap the engine out.
    """

    def __init__(self, vision_service: VisionService):
        self.vision_service = vision_service

    async def extract_text(self, body: Any, upload: Optional[UploadedImage] = None) -> Dict[str, Any]:
        request = parse_ocr_request(body)
        source = resolve_image_source(request, upload)

        analysis = await self.vision_service.analyze(source, language=request.language)

        result = normalize_analysis(
            analysis,
            include_bounding_polygons=request.include_bounding_polygons,
            include_raw_read_result=request.include_raw_read_result,
        )
        logger.info(f"Extracted {result['lineCount']} lines from {source.describe()['type']} image")

        return {
            "source": source.describe(),
            "ocr": result,
        }
