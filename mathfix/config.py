from __future__ import annotations

import os
from dataclasses import dataclass

PROVIDERS = ("openai", "lm-studio", "ollama")


@dataclass(frozen=True)
class Settings:
    provider: str
    openai_base_url: str
    openai_api_key: str | None
    openai_model: str
    lmstudio_base_url: str
    lmstudio_model: str
    ollama_base_url: str
    ollama_model: str
    timeout_s: float
    max_retries: int
    cache_size: int
    context_chars: int
    validation_workers: int
    log_level: str


def _env(name: str, default: str = "") -> str:
    val = (os.environ.get(name) or default).strip()
    # Users often set env vars with quotes (e.g. cmd.exe: set OPENAI_API_KEY="sk-...").
    if len(val) >= 2 and val[0] == val[-1] and val[0] in "\"'":
        val = val[1:-1].strip()
    return val


def _url(name: str, default: str) -> str:
    return (_env(name) or default).rstrip("/")


def load_settings() -> Settings:
    provider = _env("MATHFIX_PROVIDER", "openai").lower()
    if provider not in PROVIDERS:
        raise ValueError(f"Unknown MATHFIX_PROVIDER {provider!r}; expected one of {', '.join(PROVIDERS)}")

    openai_base_url = _url("OPENAI_BASE_URL", "https://api.openai.com/v1")
    # The OpenAI-compatible endpoint lives under /v1.
    if openai_base_url.endswith("api.openai.com"):
        openai_base_url = openai_base_url + "/v1"

    return Settings(
        provider=provider,
        openai_base_url=openai_base_url,
        openai_api_key=_env("OPENAI_API_KEY") or None,
        openai_model=_env("OPENAI_MODEL", "gpt-4o"),
        lmstudio_base_url=_url("LMSTUDIO_BASE_URL", "http://localhost:1234/v1"),
        lmstudio_model=_env("LMSTUDIO_MODEL"),
        ollama_base_url=_url("OLLAMA_BASE_URL", "http://localhost:11434"),
        ollama_model=_env("OLLAMA_MODEL"),
        timeout_s=float(_env("MATHFIX_LLM_TIMEOUT_S", "60")),
        max_retries=int(_env("MATHFIX_LLM_MAX_RETRIES", "2")),
        cache_size=int(_env("MATHFIX_CACHE_SIZE", "800")),
        context_chars=int(_env("MATHFIX_CONTEXT_CHARS", "200")),
        validation_workers=int(_env("MATHFIX_VALIDATION_WORKERS", "4")),
        log_level=_env("MATHFIX_LOG_LEVEL", "INFO").upper(),
    )
