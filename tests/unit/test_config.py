import pytest

from mathfix.config import load_settings

_VARS = [
    "MATHFIX_PROVIDER",
    "OPENAI_BASE_URL",
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "LMSTUDIO_BASE_URL",
    "LMSTUDIO_MODEL",
    "OLLAMA_BASE_URL",
    "OLLAMA_MODEL",
    "MATHFIX_LLM_TIMEOUT_S",
    "MATHFIX_LLM_MAX_RETRIES",
    "MATHFIX_CACHE_SIZE",
    "MATHFIX_CONTEXT_CHARS",
    "MATHFIX_VALIDATION_WORKERS",
    "MATHFIX_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    s = load_settings()
    assert s.provider == "openai"
    assert s.openai_base_url == "https://api.openai.com/v1"
    assert s.openai_api_key is None
    assert s.openai_model == "gpt-4o"
    assert s.ollama_base_url == "http://localhost:11434"
    assert s.cache_size == 800
    assert s.context_chars == 200
    assert s.max_retries == 2
    assert s.log_level == "INFO"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("MATHFIX_PROVIDER", "Ollama")
    monkeypatch.setenv("OPENAI_API_KEY", '"sk-quoted"')
    monkeypatch.setenv("OLLAMA_BASE_URL", "http://gpu-box:11434/")
    monkeypatch.setenv("OLLAMA_MODEL", "qwen2.5:14b")
    monkeypatch.setenv("MATHFIX_CACHE_SIZE", "64")
    monkeypatch.setenv("MATHFIX_LOG_LEVEL", "debug")
    s = load_settings()
    assert s.provider == "ollama"
    assert s.openai_api_key == "sk-quoted"
    assert s.ollama_base_url == "http://gpu-box:11434"
    assert s.ollama_model == "qwen2.5:14b"
    assert s.cache_size == 64
    assert s.log_level == "DEBUG"


def test_bare_openai_host_gets_v1(monkeypatch):
    monkeypatch.setenv("OPENAI_BASE_URL", "https://api.openai.com/")
    assert load_settings().openai_base_url == "https://api.openai.com/v1"


def test_unknown_provider(monkeypatch):
    monkeypatch.setenv("MATHFIX_PROVIDER", "bard")
    with pytest.raises(ValueError, match="MATHFIX_PROVIDER"):
        load_settings()
