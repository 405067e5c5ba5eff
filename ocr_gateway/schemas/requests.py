from typing import Any, Optional

from pydantic import (
    AnyUrl,
    BaseModel,
    Field,
    StrictBool,
    StrictStr,
    TypeAdapter,
    ValidationError,
    field_validator,
)
from pydantic_core import PydanticCustomError

from ocr_gateway.core.errors import BodyValidationError

_any_url = TypeAdapter(AnyUrl)


class OCRRequest(BaseModel):
    """Body of POST /api/ocr/extract-text (JSON or multipart text fields)"""

    image_url: Optional[StrictStr] = Field(None, alias="imageUrl", description="Public image URL")
    language: Optional[StrictStr] = Field(
        None, min_length=2, max_length=10, description="Language hint, e.g. 'en'"
    )
    include_bounding_polygons: StrictBool = Field(False, alias="includeBoundingPolygons")
    include_raw_read_result: StrictBool = Field(False, alias="includeRawReadResult")

    @field_validator("image_url")
    @classmethod
    def validate_image_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            url = _any_url.validate_python(v)
        except ValidationError:
            raise PydanticCustomError("url", "imageUrl must be a valid URL")
        if not url.host:
            raise PydanticCustomError("url", "imageUrl must be a valid URL")
        # L'URL est transmise telle quelle au moteur OCR
        return v

    class Config:
        frozen = True
        extra = "ignore"
        json_schema_extra = {
            "example": {
                "imageUrl": "https://example.com/receipt.jpg",
                "language": "en",
                "includeBoundingPolygons": False,
                "includeRawReadResult": False,
            }
        }


def parse_ocr_request(raw: Any) -> OCRRequest:
    """
    Validate a raw request body.

    :param raw: decoded body (normally a dict)
    :return: the frozen OCRRequest
    :raises BodyValidationError: one {path, message} entry per offending field
    """
    try:
        return OCRRequest.model_validate(raw if raw is not None else {})
    except ValidationError as e:
        raise BodyValidationError([
            {"path": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ])
