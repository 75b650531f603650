from wealth_server.config.settings import _as_float, _as_int, get_settings


def test_settings_defaults(monkeypatch) -> None:
    for name in ("FX_PAIR_SYMBOL", "FX_FALLBACK_RATE", "METADATA_CONCURRENCY", "PLATFORM_SNAPSHOT_PATH", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    settings = get_settings()
    assert settings.fx_pair_symbol == "USDGBP=X"
    assert settings.fx_fallback_rate == 0.77
    assert settings.metadata_concurrency == 8
    assert settings.platform_snapshot_path is None
    assert settings.log_level == "INFO"


def test_settings_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("FX_FALLBACK_RATE", "0.8")
    monkeypatch.setenv("METADATA_CONCURRENCY", "0")
    monkeypatch.setenv("WEALTH_API_BASE_URL", "https://wealth.test/api/")
    monkeypatch.setenv("LOG_LEVEL", " debug ")
    settings = get_settings()
    assert settings.fx_fallback_rate == 0.8
    assert settings.metadata_concurrency == 1
    assert settings.wealth_api_base_url == "https://wealth.test/api"
    assert settings.log_level == "DEBUG"


def test_number_helpers_fall_back_on_garbage() -> None:
    assert _as_int("ten", 5) == 5
    assert _as_int("", 5) == 5
    assert _as_float("1.5", 0.0) == 1.5
    assert _as_float("x", 0.25) == 0.25
