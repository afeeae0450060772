from docchat.settings import Settings, get_settings, reset_settings_cache


def test_defaults_without_environment(monkeypatch):
    for name in ("CHUNK_SIZE", "CHUNK_OVERLAP", "RETRIEVAL_TOP_K", "LLM_PROVIDER", "CORS_ORIGINS"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()

    assert settings.chunk_size == 1000
    assert settings.chunk_overlap == 200
    assert settings.top_k == 4
    assert settings.llm_provider == "stub"
    assert settings.cors_origins == ("*",)
    assert settings.max_upload_bytes == 25 * 1024 * 1024


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("CHUNK_SIZE", "500")
    monkeypatch.setenv("CHUNK_OVERLAP", "50")
    monkeypatch.setenv("LLM_PROVIDER", "Gemini")
    monkeypatch.setenv("CHAT_ATTACH_SOURCE", "yes")
    monkeypatch.setenv("LLM_TEMPERATURE", "0.3")
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test")

    settings = Settings.from_env()

    assert (settings.chunk_size, settings.chunk_overlap) == (500, 50)
    assert settings.llm_provider == "gemini"
    assert settings.attach_source is True
    assert settings.llm_temperature == 0.3
    assert settings.cors_origins == ("http://a.test", "http://b.test")


def test_malformed_numbers_fall_back_to_defaults(monkeypatch):
    monkeypatch.setenv("CHUNK_SIZE", "lots")
    monkeypatch.setenv("LLM_TEMPERATURE", "warm")

    settings = Settings.from_env()

    assert settings.chunk_size == 1000
    assert settings.llm_temperature == 0.0


def test_get_settings_is_cached(monkeypatch):
    reset_settings_cache()
    monkeypatch.setenv("RETRIEVAL_TOP_K", "7")
    try:
        first = get_settings()
        monkeypatch.setenv("RETRIEVAL_TOP_K", "9")
        assert get_settings() is first
        assert first.top_k == 7
    finally:
        reset_settings_cache()


def test_api_key_hidden_from_repr():
    assert "secret" not in repr(Settings(google_api_key="secret"))
