from typing import Any, Dict, List, Optional


class GatewayError(Exception):
    """
    Base class for every failure the gateway knows how to report.

    The message given to the constructor is public: it ends up in the
    response envelope as is.
    """

    status_code = 500
    code = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        public_message: str = "Internal server error",
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        details: Any = None,
    ):
        super().__init__(public_message)
        self.public_message = public_message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.details = details


class InvalidJSONError(GatewayError):
    status_code = 400
    code = "INVALID_JSON"

    def __init__(self):
        super().__init__("Request body contains invalid JSON")


class PayloadTooLargeError(GatewayError):
    status_code = 413
    code = "PAYLOAD_TOO_LARGE"

    def __init__(self, limit_bytes: int):
        super().__init__(f"Request body is too large. Max allowed size is {limit_bytes} bytes.")
        self.limit_bytes = limit_bytes


class UploadError(GatewayError):
    """Rejected multipart upload; `reason` tells which constraint failed"""

    TOO_LARGE = "too_large"
    UNSUPPORTED_TYPE = "unsupported_type"
    UNEXPECTED_FILE = "unexpected_file"

    CODES = {
        TOO_LARGE: (413, "FILE_TOO_LARGE"),
        UNSUPPORTED_TYPE: (400, "UNSUPPORTED_MEDIA_TYPE"),
        UNEXPECTED_FILE: (400, "UNEXPECTED_FILE"),
    }

    def __init__(self, reason: str, message: str = "Invalid file upload"):
        status_code, code = self.CODES.get(reason, (400, "UPLOAD_ERROR"))
        super().__init__(message, status_code=status_code, code=code)
        self.reason = reason


class BodyValidationError(GatewayError):
    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, errors: List[Dict[str, str]]):
        super().__init__("Request body validation failed", details=errors)
        self.errors = errors


class MissingImageError(GatewayError):
    status_code = 400
    code = "MISSING_IMAGE"

    def __init__(self):
        super().__init__(
            'Either imageUrl in JSON body or image file upload (field name "file") is required'
        )


class VisionTransportError(GatewayError):
    """The engine could not be reached (DNS, refused connection, timeout...)"""

    status_code = 502
    code = "AZURE_CLIENT_ERROR"

    def __init__(self):
        super().__init__("Azure Vision client call failed")


class VisionResponseError(GatewayError):
    """The engine answered with something other than a successful analysis"""

    def __init__(
        self,
        message: str,
        status: int,
        code: str,
        body: Any = None,
        error_code_header: Optional[str] = None,
    ):
        super().__init__(message, status_code=status, code=code)
        self.body = body
        self.error_code_header = error_code_header
        headers = {}
        if error_code_header is not None:
            headers["x-ms-error-code"] = error_code_header
        self.details = {"status": status, "data": body, "headers": headers}
