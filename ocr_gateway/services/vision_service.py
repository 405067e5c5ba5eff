import asyncio
import time
from typing import Any, Dict, Optional

import requests
from loguru import logger

from ocr_gateway.core.errors import VisionResponseError, VisionTransportError
from ocr_gateway.services.image_source import ImageSource, UrlSource

ANALYZE_PATH = "/computervision/imageanalysis:analyze"
# On ne demande que l'OCR : la passerelle reste volontairement minimale
FEATURES = "read"
ERROR_CODE_HEADER = "x-ms-error-code"


class VisionService:
    """
    Client for the Azure AI Vision Image Analysis 4.0 REST API.

    One instance per process; the underlying requests.Session is reused
    across requests and holds no per-request state.
    """

    def __init__(
        self,
        endpoint: str,
        key: str,
        api_version: str = "2023-10-01",
        timeout: Optional[float] = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.api_version = api_version
        self.timeout = timeout
        # Partagée entre les threads de asyncio.to_thread : la session n'est
        # modifiée qu'ici, ensuite chaque appel passe tout en arguments et
        # s'appuie sur le pool de connexions urllib3, lui thread-safe.
        self.session = session or requests.Session()
        self.session.headers.update({"Ocp-Apim-Subscription-Key": key})
        logger.info(f"Vision AI client initialized for {self.endpoint}")

    @property
    def analyze_url(self) -> str:
        return f"{self.endpoint}{ANALYZE_PATH}"

    def _build_params(self, language: Optional[str]) -> Dict[str, str]:
        params = {"api-version": self.api_version, "features": FEATURES}
        if language:
            params["language"] = language
        return params

    def _post(self, source: ImageSource, language: Optional[str]) -> requests.Response:
        params = self._build_params(language)
        if isinstance(source, UrlSource):
            return self.session.post(
                self.analyze_url,
                params=params,
                json={"url": source.image_url},
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        return self.session.post(
            self.analyze_url,
            params=params,
            data=source.content,
            headers={"Content-Type": "application/octet-stream"},
            timeout=self.timeout,
        )

    async def analyze(self, source: ImageSource, language: Optional[str] = None) -> Dict[str, Any]:
        """
        Run the Read feature on one image.

        :param source: UrlSource or UploadSource
        :param language: optional language hint
        :return: the engine's JSON body (readResult, modelVersion, metadata)
        :raises VisionTransportError: the engine could not be reached
        :raises VisionResponseError: the engine answered with an error
        """
        start_time = time.time()
        source_type = "url" if isinstance(source, UrlSource) else "upload"
        logger.info(f"Sending {source_type} image to Vision AI (language={language or 'auto'})")

        try:
            response = await asyncio.to_thread(self._post, source, language)
        except requests.RequestException as e:
            logger.error(f"Vision AI call failed before any response: {e!r}")
            raise VisionTransportError() from e

        elapsed = time.time() - start_time
        logger.info(f"Vision AI responded {response.status_code} in {elapsed:.2f}s")

        if response.status_code != 200:
            body = _read_body(response)
            engine_error = body.get("error") if isinstance(body, dict) else None
            engine_error = engine_error if isinstance(engine_error, dict) else {}
            status = response.status_code or 502

            raise VisionResponseError(
                engine_error.get("message") or "Azure Vision API call failed",
                status=status,
                code=engine_error.get("code") or "AZURE_VISION_ERROR",
                body=body,
                error_code_header=response.headers.get(ERROR_CODE_HEADER),
            )

        body = _read_body(response)
        if not isinstance(body, dict):
            raise VisionResponseError(
                "Azure Vision returned an unreadable response",
                status=502,
                code="AZURE_VISION_ERROR",
                body=body,
                error_code_header=response.headers.get(ERROR_CODE_HEADER),
            )
        return body


def _read_body(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or {}
