import os
from typing import Dict, Mapping, Optional

from dotenv import load_dotenv
from loguru import logger
from pydantic import AnyHttpUrl, BaseModel, Field, TypeAdapter, ValidationError, field_validator

# Variables d'environnement -> champs de Settings
ENV_FIELDS = {
    "PORT": "port",
    "HOST": "host",
    "VISION_ENDPOINT": "vision_endpoint",
    "VISION_KEY": "vision_key",
    "VISION_API_VERSION": "vision_api_version",
    "VISION_TIMEOUT_SECONDS": "vision_timeout_seconds",
    "MAX_UPLOAD_SIZE_MB": "max_upload_size_mb",
    "LOG_LEVEL": "log_level",
    "LOG_FILE": "log_file",
}

_http_url = TypeAdapter(AnyHttpUrl)


class Settings(BaseModel):
    """Runtime configuration, read once at startup"""

    port: int = Field(3000, ge=1, le=65535)
    host: str = "0.0.0.0"
    vision_endpoint: str
    vision_key: str = Field(..., min_length=1)
    vision_api_version: str = Field("2023-10-01", min_length=1)
    vision_timeout_seconds: float = Field(30.0, gt=0)
    max_upload_size_mb: float = Field(4.0, gt=0)
    log_level: str = "INFO"
    log_file: str = "logs/app.log"

    @field_validator("vision_endpoint")
    @classmethod
    def check_endpoint(cls, v: str) -> str:
        try:
            _http_url.validate_python(v)
        except ValidationError:
            raise ValueError("VISION_ENDPOINT must be a valid URL")
        return v.rstrip("/")

    @field_validator("vision_key")
    @classmethod
    def check_key(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("VISION_KEY is required")
        return v

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, v: str) -> str:
        v = v.strip().upper()
        try:
            logger.level(v)
        except ValueError:
            raise ValueError(f"LOG_LEVEL must be a loguru level name, got {v!r}")
        return v

    @property
    def max_upload_size_bytes(self) -> int:
        return int(self.max_upload_size_mb * 1024 * 1024)


def _field_errors(exc: ValidationError) -> Dict[str, list]:
    names = {field: env for env, field in ENV_FIELDS.items()}
    errors: Dict[str, list] = {}
    for err in exc.errors():
        field = str(err["loc"][0]) if err["loc"] else ""
        errors.setdefault(names.get(field, field), []).append(err["msg"])
    return errors


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from the environment (.env is loaded first when reading os.environ).

    Exits the process with status 1 when the configuration is invalid.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    raw = {}
    for env_name, field in ENV_FIELDS.items():
        value = environ.get(env_name)
        # Une variable vide vaut "non définie", sauf LOG_FILE qui désactive le fichier
        if value is None or (value.strip() == "" and env_name != "LOG_FILE"):
            continue
        raw[field] = value

    try:
        return Settings.model_validate(raw)
    except ValidationError as e:
        logger.error(f"Invalid environment configuration: {_field_errors(e)}")
        raise SystemExit(1)
