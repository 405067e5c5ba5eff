import pytest

from ocr_gateway.core.config import load_settings

BASE_ENV = {"VISION_ENDPOINT": "https://vision.example.com/", "VISION_KEY": "secret"}


def test_defaults():
    settings = load_settings(BASE_ENV)
    assert settings.port == 3000
    assert settings.vision_endpoint == "https://vision.example.com"
    assert settings.max_upload_size_bytes == 4 * 1024 * 1024
    assert settings.vision_timeout_seconds == 30
    assert settings.vision_api_version == "2023-10-01"


def test_overrides():
    settings = load_settings({**BASE_ENV, "PORT": "8080", "MAX_UPLOAD_SIZE_MB": "10", "LOG_FILE": ""})
    assert settings.port == 8080
    assert settings.max_upload_size_bytes == 10 * 1024 * 1024
    assert settings.log_file == ""


def test_blank_values_use_defaults():
    settings = load_settings({**BASE_ENV, "PORT": "", "MAX_UPLOAD_SIZE_MB": " "})
    assert settings.port == 3000
    assert settings.max_upload_size_mb == 4


@pytest.mark.parametrize(
    "env",
    [
        {"VISION_KEY": "secret"},
        {"VISION_ENDPOINT": "not-a-url", "VISION_KEY": "secret"},
        {"VISION_ENDPOINT": "https://vision.example.com"},
        {**BASE_ENV, "VISION_KEY": "   "},
        {**BASE_ENV, "PORT": "abc"},
        {**BASE_ENV, "MAX_UPLOAD_SIZE_MB": "0"},
        {**BASE_ENV, "LOG_LEVEL": "LOUD"},
    ],
)
def test_invalid_config_exits(env):
    with pytest.raises(SystemExit) as exc:
        load_settings(env)
    assert exc.value.code == 1


def test_log_level_normalized():
    settings = load_settings({**BASE_ENV, "LOG_LEVEL": "debug"})
    assert settings.log_level == "DEBUG"
