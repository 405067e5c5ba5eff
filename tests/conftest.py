import json

import pytest
import requests
from fastapi.testclient import TestClient

from ocr_gateway.core.config import Settings
from ocr_gateway.main import create_app
from ocr_gateway.services.vision_service import VisionService

ENDPOINT = "https://vision.example.com"


class FakeResponse:
    def __init__(self, status_code=200, body=None, headers=None, text=None):
        self.status_code = status_code
        self._body = body
        self.headers = headers or {}
        self.text = text if text is not None else (json.dumps(body) if body is not None else "")

    def json(self):
        if self._body is None:
            return json.loads(self.text)
        return self._body


class FakeSession:
    """Stands in for requests.Session; records every POST"""

    def __init__(self, response=None, error=None):
        self.headers = {}
        self.calls = []
        self.response = response or FakeResponse(200, sample_analysis())
        self.error = error

    def post(self, url, **kwargs):
        self.calls.append({"url": url, **kwargs})
        if self.error is not None:
            raise self.error
        return self.response


def sample_analysis():
    return {
        "modelVersion": "2023-10-01",
        "metadata": {"width": 800, "height": 600},
        "readResult": {
            "blocks": [
                {
                    "lines": [
                        {
                            "text": "Hello world",
                            "boundingPolygon": [{"x": 1, "y": 2}, {"x": 3, "y": 2}, {"x": 3, "y": 4}, {"x": 1, "y": 4}],
                            "words": [
                                {"text": "Hello", "confidence": 0.99, "boundingPolygon": [{"x": 1, "y": 2}]},
                                {"text": "world", "confidence": 0.95, "boundingPolygon": [{"x": 2, "y": 2}]},
                            ],
                        },
                        {
                            "words": [
                                {"text": "no", "confidence": 0.9, "boundingPolygon": [{"x": 1, "y": 5}]},
                                {"text": "text", "confidence": 0.8, "boundingPolygon": [{"x": 2, "y": 5}]},
                            ],
                        },
                    ]
                },
                {
                    "lines": [
                        {
                            "text": "TOTAL 12.50",
                            "boundingPolygon": [{"x": 1, "y": 9}],
                            "words": [{"text": "TOTAL", "confidence": 0.97, "boundingPolygon": [{"x": 1, "y": 9}]},
                                      {"text": "12.50", "confidence": 0.93, "boundingPolygon": [{"x": 5, "y": 9}]}],
                        }
                    ]
                },
            ]
        },
    }


@pytest.fixture
def settings():
    return Settings(
        vision_endpoint=ENDPOINT,
        vision_key="test-key",
        max_upload_size_mb=1,
        log_file="",
    )


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def vision_service(fake_session):
    return VisionService(endpoint=ENDPOINT, key="test-key", session=fake_session)


@pytest.fixture
def client(settings, vision_service):
    app = create_app(settings, vision_service=vision_service)
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


@pytest.fixture
def connection_error():
    return requests.ConnectionError("getaddrinfo failed for vision.example.com")
