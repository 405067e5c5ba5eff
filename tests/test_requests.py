import pytest

from ocr_gateway.core.errors import BodyValidationError
from ocr_gateway.schemas.requests import parse_ocr_request


def test_defaults():
    req = parse_ocr_request({"imageUrl": "https://example.com/a.png"})
    assert req.image_url == "https://example.com/a.png"
    assert req.language is None
    assert req.include_bounding_polygons is False
    assert req.include_raw_read_result is False


def test_empty_body_is_valid():
    req = parse_ocr_request({})
    assert req.image_url is None


def test_url_kept_verbatim():
    req = parse_ocr_request({"imageUrl": "https://example.com"})
    assert req.image_url == "https://example.com"


def test_language_too_short():
    with pytest.raises(BodyValidationError) as exc:
        parse_ocr_request({"language": "x"})
    paths = [e["path"] for e in exc.value.errors]
    assert paths == ["language"]
    assert exc.value.errors[0]["message"]


def test_language_too_long():
    with pytest.raises(BodyValidationError) as exc:
        parse_ocr_request({"language": "x" * 11})
    assert exc.value.errors[0]["path"] == "language"


def test_invalid_url():
    with pytest.raises(BodyValidationError) as exc:
        parse_ocr_request({"imageUrl": "not a url"})
    assert exc.value.errors == [{"path": "imageUrl", "message": "imageUrl must be a valid URL"}]


def test_numeric_url_not_coerced():
    with pytest.raises(BodyValidationError) as exc:
        parse_ocr_request({"imageUrl": 12345})
    assert exc.value.errors[0]["path"] == "imageUrl"


@pytest.mark.parametrize("value", ["true", 1, "yes"])
def test_flags_must_be_booleans(value):
    with pytest.raises(BodyValidationError) as exc:
        parse_ocr_request({"includeBoundingPolygons": value})
    assert exc.value.errors[0]["path"] == "includeBoundingPolygons"


def test_reports_every_field():
    with pytest.raises(BodyValidationError) as exc:
        parse_ocr_request({"imageUrl": "nope", "language": "x", "includeRawReadResult": "no"})
    paths = sorted(e["path"] for e in exc.value.errors)
    assert paths == ["imageUrl", "includeRawReadResult", "language"]


def test_body_must_be_an_object():
    with pytest.raises(BodyValidationError):
        parse_ocr_request(["https://example.com/a.png"])


def test_unknown_keys_ignored():
    req = parse_ocr_request({"imageUrl": "https://example.com/a.png", "extra": 1})
    assert not hasattr(req, "extra")


def test_validated_request_is_frozen():
    req = parse_ocr_request({"imageUrl": "https://example.com/a.png"})
    with pytest.raises(Exception):
        req.language = "fr"


def test_snake_case_keys_ignored():
    req = parse_ocr_request({"image_url": "https://example.com/a.png", "include_raw_read_result": True})
    assert req.image_url is None
    assert req.include_raw_read_result is False
