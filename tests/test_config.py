import pytest

from config import Settings, get_settings
from price_allocation import PricePrecedence


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults(monkeypatch):
    for key in ("PORT", "ALLOCATION_PRECEDENCE", "ALLOCATION_CURRENCY", "LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    assert get_settings() == Settings()


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("ALLOCATION_PRECEDENCE", "Override")
    monkeypatch.setenv("ALLOCATION_CURRENCY", "eur")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = get_settings()
    assert settings.port == 8080
    assert settings.precedence is PricePrecedence.OVERRIDE
    assert settings.currency == "EUR"
    assert settings.log_level == "DEBUG"


def test_invalid_values_fall_back(monkeypatch):
    monkeypatch.setenv("PORT", "eighty")
    monkeypatch.setenv("ALLOCATION_PRECEDENCE", "cheapest")
    monkeypatch.setenv("LOG_LEVEL", "loud")

    settings = Settings.from_env()
    assert settings.port == 7860
    assert settings.precedence is PricePrecedence.PRICE
    assert settings.log_level == "INFO"
