"""Tests for configuration settings."""


def test_settings_loads_from_env():
    """Test that settings loads from environment variables."""
    # Import after env vars are set in conftest
    from smart_invoice.config.settings import get_settings

    # Clear the cache to force reload
    get_settings.cache_clear()

    settings = get_settings()

    assert settings.google_api_key.get_secret_value() == "test-key"
    assert settings.holiday_country == "GR"


def test_settings_has_defaults():
    """Test that settings has sensible defaults."""
    from smart_invoice.config.settings import get_settings

    get_settings.cache_clear()
    settings = get_settings()

    assert settings.holiday_api_url == "https://date.nager.at/api/v3"
    assert settings.holiday_timeout == 10.0
    assert settings.hint_timeout == 8.0
    assert settings.gemini_model == "gemini-2.0-flash"
    assert settings.default_hours_per_day == 8.0
    assert settings.weekend_fill_color == "D3D3D3"


def test_settings_override_from_env(monkeypatch):
    """Test that env vars override defaults."""
    from smart_invoice.config.settings import get_settings

    monkeypatch.setenv("HINT_TIMEOUT", "2.5")
    monkeypatch.setenv("WEEKEND_FILL_COLOR", "CCCCCC")
    get_settings.cache_clear()

    settings = get_settings()

    assert settings.hint_timeout == 2.5
    assert settings.weekend_fill_color == "CCCCCC"
    get_settings.cache_clear()


def test_settings_are_cached():
    """Test that get_settings returns cached instance."""
    from smart_invoice.config.settings import get_settings

    get_settings.cache_clear()

    settings1 = get_settings()
    settings2 = get_settings()

    assert settings1 is settings2
