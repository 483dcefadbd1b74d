import pytest
from pydantic import ValidationError

from agenda_gateway.config import DEFAULT_MODEL, GatewayConfig, MEGABYTE


def test_defaults_from_empty_environment():
    config = GatewayConfig.from_env(load_env_file=False)
    assert config.api_key is None
    assert not config.has_api_key
    assert config.model == DEFAULT_MODEL
    assert config.prompt_template == "razonamiento"
    assert config.timeout_seconds == 60.0
    assert config.max_retries == 1
    assert config.record_mode == "coerce"
    assert config.max_body_bytes == 50 * MEGABYTE
    assert config.port == 3001
    assert config.origins_list == ["*"]


def test_gemini_key_preferred_over_google_key(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "gemini-secret-value")
    monkeypatch.setenv("GOOGLE_API_KEY", "google-secret-value")
    config = GatewayConfig.from_env(load_env_file=False)
    assert config.api_key.get_secret_value() == "gemini-secret-value"


def test_google_key_fallback(monkeypatch):
    monkeypatch.setenv("GOOGLE_API_KEY", "google-secret-value")
    assert GatewayConfig.from_env(load_env_file=False).has_api_key


def test_empty_key_counts_as_missing(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "")
    assert not GatewayConfig.from_env(load_env_file=False).has_api_key


def test_overrides_from_environment(monkeypatch):
    monkeypatch.setenv("GEMINI_MODEL", "gemini-2.0-flash")
    monkeypatch.setenv("GEMINI_ENDPOINT", "https://example.test/v1beta/")
    monkeypatch.setenv("PROMPT_TEMPLATE", "estricto")
    monkeypatch.setenv("UPSTREAM_TIMEOUT_MS", "30000")
    monkeypatch.setenv("RECORD_MODE", "strict")
    monkeypatch.setenv("MAX_BODY_MB", "10")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.test, https://b.test")
    config = GatewayConfig.from_env(load_env_file=False)
    assert config.model == "gemini-2.0-flash"
    assert config.model_endpoint == "https://example.test/v1beta"
    assert config.prompt_template == "estricto"
    assert config.timeout_seconds == 30.0
    assert config.record_mode == "strict"
    assert config.max_body_bytes == 10 * MEGABYTE
    assert config.port == 8080
    assert config.origins_list == ["https://a.test", "https://b.test"]


def test_secret_not_rendered():
    config = GatewayConfig(_env_file=None, api_key="super-secret-credential")
    assert "super-secret-credential" not in repr(config)
    assert "super-secret-credential" not in config.model_dump_json()
    assert config.api_key_prefix() == "super-..."


def test_unknown_template_rejected():
    with pytest.raises(ValidationError):
        GatewayConfig(_env_file=None, prompt_template="inexistente")


def test_unknown_record_mode_rejected():
    with pytest.raises(ValidationError):
        GatewayConfig(_env_file=None, record_mode="loose")


def test_invalid_number_is_validation_error(monkeypatch):
    monkeypatch.setenv("PORT", "abc")
    with pytest.raises(ValidationError) as exc_info:
        GatewayConfig.from_env(load_env_file=False)
    assert "port" in str(exc_info.value).lower()


def test_values_read_from_env_file(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("GEMINI_API_KEY=from-dotenv-file\nPROMPT_TEMPLATE=conciso\n")
    monkeypatch.chdir(tmp_path)
    config = GatewayConfig.from_env()
    assert config.api_key.get_secret_value() == "from-dotenv-file"
    assert config.prompt_template == "conciso"


def test_environment_overrides_env_file(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("GEMINI_MODEL=gemini-from-file\n")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("GEMINI_MODEL", "gemini-from-env")
    assert GatewayConfig.from_env().model == "gemini-from-env"


def test_keyword_construction_beats_environment(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "env-secret-value")
    monkeypatch.setenv("PORT", "9000")
    config = GatewayConfig(_env_file=None, api_key=None, port=8080)
    assert not config.has_api_key
    assert config.port == 8080
