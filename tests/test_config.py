import pytest
from pydantic import ValidationError
from structlog.testing import capture_logs

from config import Settings, get_settings
from main import resolve_session_secret


def test_defaults(settings_env):
    settings = get_settings()
    assert settings.SINGLE_TENANT_MODE is False
    assert settings.TIMEZONE == "UTC"
    assert settings.SMTP_PORT == 587
    assert settings.oauth_configured


def test_environment_values_are_parsed(settings_env):
    settings_env(SINGLE_TENANT_MODE="yes", SMTP_PORT="2525", TIMEZONE="Europe/Berlin")
    settings = get_settings()
    assert settings.SINGLE_TENANT_MODE is True
    assert settings.SMTP_PORT == 2525
    assert settings.TIMEZONE == "Europe/Berlin"


def test_unknown_timezone_is_rejected_at_load(settings_env):
    settings_env(TIMEZONE="Europe/Nowhere")
    with pytest.raises(ValidationError, match="Unknown time zone"):
        get_settings()


def test_configured_session_secret_is_used():
    assert resolve_session_secret(Settings(SESSION_SECRET="s3cret")) == "s3cret"


def test_generated_session_secret_logs_warning():
    with capture_logs() as logs:
        secret = resolve_session_secret(Settings(SESSION_SECRET=None))

    assert len(secret) >= 32
    assert logs[0]["event"] == "session_secret_generated"
    assert logs[0]["log_level"] == "warning"
