from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from ocr_gateway.core.errors import MissingImageError
from ocr_gateway.schemas.requests import OCRRequest


@dataclass(frozen=True)
class UploadedImage:
    """Single multipart `file` part, already checked for size and type"""
    content: bytes
    mime_type: str
    size_bytes: int
    file_name: str


@dataclass(frozen=True)
class UrlSource:
    image_url: str

    def describe(self) -> Dict[str, Any]:
        return {"type": "url", "imageUrl": self.image_url}


@dataclass(frozen=True)
class UploadSource:
    content: bytes
    file_name: str
    mime_type: str
    size_bytes: int

    def describe(self) -> Dict[str, Any]:
        return {
            "type": "upload",
            "fileName": self.file_name,
            "mimeType": self.mime_type,
            "sizeBytes": self.size_bytes,
        }


ImageSource = Union[UrlSource, UploadSource]


def resolve_image_source(request: OCRRequest, upload: Optional[UploadedImage] = None) -> ImageSource:
    """
    Pick the image the engine will analyze.

    The URL wins when the body carries one, even if a file was uploaded too.
    """
    if request.image_url:
        return UrlSource(image_url=request.image_url)
    if upload is not None:
        return UploadSource(
            content=upload.content,
            file_name=upload.file_name,
            mime_type=upload.mime_type,
            size_bytes=upload.size_bytes,
        )
    raise MissingImageError()
