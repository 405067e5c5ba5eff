from pydantic import BaseModel, Field
from typing import Optional, Any, Dict, List


class OCRWord(BaseModel):
    text: Optional[str] = None
    confidence: Optional[float] = None
    boundingPolygon: Optional[List[Dict[str, Any]]] = None


class OCRLine(BaseModel):
    text: str
    boundingPolygon: Optional[List[Dict[str, Any]]] = None
    words: Optional[List[OCRWord]] = None


class OCRResult(BaseModel):
    """Flattened Read result"""
    plainText: str = Field(..., description="Lines joined with newlines, in engine order")
    lineCount: int
    lines: List[OCRLine]
    modelVersion: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    rawReadResult: Optional[Dict[str, Any]] = Field(
        None, description="Untouched readResult, only when includeRawReadResult is true"
    )


class ImageSourceInfo(BaseModel):
    type: str = Field(..., description="'url' or 'upload'")
    imageUrl: Optional[str] = None
    fileName: Optional[str] = None
    mimeType: Optional[str] = None
    sizeBytes: Optional[int] = None


class OCRResponse(BaseModel):
    """Response model for POST /api/ocr/extract-text"""
    source: ImageSourceInfo
    ocr: OCRResult

    class Config:
        json_schema_extra = {
            "example": {
                "source": {"type": "url", "imageUrl": "https://example.com/receipt.jpg"},
                "ocr": {
                    "plainText": "TOTAL\n12.50",
                    "lineCount": 2,
                    "lines": [
                        {"text": "TOTAL", "words": [{"text": "TOTAL", "confidence": 0.99}]},
                        {"text": "12.50", "words": [{"text": "12.50", "confidence": 0.97}]},
                    ],
                    "modelVersion": "2023-10-01",
                    "metadata": {"width": 800, "height": 600},
                },
            }
        }


class ErrorBody(BaseModel):
    code: str
    message: str
    details: Optional[Any] = None


class ErrorResponse(BaseModel):
    """Envelope returned for every failure"""
    error: ErrorBody


class HealthResponse(BaseModel):
    status: str
    timestamp: str
