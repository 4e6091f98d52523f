import pytest

from core.config import REQUIRED_ENV, get_settings, load_settings
from utils.errors import ConfigurationError


def test_load_settings_reads_environment(monkeypatch):
    monkeypatch.delenv("NOTIFY_TIMEOUT_SEC", raising=False)
    settings = load_settings()
    assert settings.payu_merchant_key == "gtKFFx"
    assert settings.payu_merchant_salt == "eCwWELxi"
    assert settings.resend_api_key == "re_test_key"
    assert settings.notify_timeout_sec == 10.0
    assert settings.app_base_url == "https://wanderhub.ai"


@pytest.mark.parametrize("name", REQUIRED_ENV)
def test_each_credential_is_required(monkeypatch, name):
    monkeypatch.delenv(name)
    with pytest.raises(ConfigurationError) as exc:
        load_settings()
    assert name in str(exc.value)


def test_all_missing_names_are_reported(monkeypatch):
    monkeypatch.setenv("PAYU_MERCHANT_KEY", "  ")
    monkeypatch.setenv("RESEND_API_KEY", "")
    with pytest.raises(ConfigurationError) as exc:
        load_settings()
    assert "PAYU_MERCHANT_KEY" in str(exc.value)
    assert "RESEND_API_KEY" in str(exc.value)


def test_quoted_values_are_unwrapped(monkeypatch):
    monkeypatch.setenv("PAYU_MERCHANT_SALT", '"eCwWELxi"')
    assert load_settings().payu_merchant_salt == "eCwWELxi"


@pytest.mark.parametrize("value", ["soon", "0", "-1"])
def test_bad_notify_timeout(monkeypatch, value):
    monkeypatch.setenv("NOTIFY_TIMEOUT_SEC", value)
    with pytest.raises(ConfigurationError):
        load_settings()


def test_get_settings_is_built_once():
    assert get_settings() is get_settings()
