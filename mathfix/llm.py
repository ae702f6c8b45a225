from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional, TypeVar

import requests
from openai import OpenAI
from pydantic import BaseModel

from .config import Settings
from .prompts import SYSTEM_PROMPT, build_user_prompt, clean_llm_output

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RepairError(RuntimeError):
    """A repair provider could not produce a replacement formula."""


class FixFormulaRequest(BaseModel):
    original_latex: str
    error_message: str
    context: str = ""
    delimiter_type: str


class FixFormulaResponse(BaseModel):
    fixed_latex: str
    model: str


class RepairClient(ABC):
    """Contract every repair provider implements."""

    provider_name: str = ""

    @abstractmethod
    def fix_formula(self, request: FixFormulaRequest) -> FixFormulaResponse: ...

    @abstractmethod
    def test_connection(self) -> bool: ...

    def list_models(self) -> list[str]:
        return []


def _messages(request: FixFormulaRequest) -> list[dict]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {
            "role": "user",
            "content": build_user_prompt(request.original_latex, request.error_message, request.context),
        },
    ]


def _with_retries(call: Callable[[], T], *, max_retries: int, what: str) -> T:
    last_err: Optional[Exception] = None
    for attempt in range(max(0, int(max_retries)) + 1):
        try:
            return call()
        except RepairError:
            raise
        except Exception as e:  # noqa: BLE001
            last_err = e
            if attempt >= max_retries:
                break
            logger.info("%s failed (attempt %d/%d): %s", what, attempt + 1, max_retries + 1, e)
            time.sleep(0.6 * (attempt + 1))
    raise RepairError(f"{what} failed: {last_err}") from last_err


def _cleaned_or_raise(content: str, provider: str) -> str:
    fixed = clean_llm_output(content)
    if not fixed:
        raise RepairError(f"{provider} returned an empty formula")
    return fixed


class OpenAICompatibleClient(RepairClient):
    """OpenAI chat-completions endpoint; also serves LM Studio's local server."""

    def __init__(
        self,
        *,
        base_url: str,
        model: str,
        api_key: str | None = None,
        provider_name: str = "OpenAI",
        timeout_s: float = 60.0,
        max_retries: int = 2,
    ) -> None:
        self.provider_name = provider_name
        self._model = model
        self._timeout_s = timeout_s
        self._max_retries = max_retries
        # Local servers ignore the key but the client requires one.
        self._client = OpenAI(api_key=api_key or "not-needed", base_url=base_url, max_retries=0)

    def fix_formula(self, request: FixFormulaRequest) -> FixFormulaResponse:
        def call():
            return self._client.chat.completions.create(
                model=self._model,
                messages=_messages(request),
                temperature=0.2,
                max_tokens=512,
                timeout=self._timeout_s,
            )

        resp = _with_retries(call, max_retries=self._max_retries, what=f"{self.provider_name} fix request")
        try:
            content = resp.choices[0].message.content or ""
        except (AttributeError, IndexError) as e:
            raise RepairError(f"{self.provider_name} returned a malformed response") from e
        return FixFormulaResponse(
            fixed_latex=_cleaned_or_raise(content, self.provider_name),
            model=getattr(resp, "model", None) or self._model,
        )

    def test_connection(self) -> bool:
        try:
            self._client.models.list(timeout=self._timeout_s)
            return True
        except Exception as e:  # noqa: BLE001
            logger.info("%s connection test failed: %s", self.provider_name, e)
            return False

    def list_models(self) -> list[str]:
        try:
            return sorted(m.id for m in self._client.models.list(timeout=self._timeout_s))
        except Exception as e:  # noqa: BLE001
            logger.info("%s model listing failed: %s", self.provider_name, e)
            return []


class OllamaClient(RepairClient):
    provider_name = "Ollama"

    def __init__(
        self,
        *,
        base_url: str = "http://localhost:11434",
        model: str,
        timeout_s: float = 60.0,
        max_retries: int = 2,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._model = model
        self._timeout_s = timeout_s
        self._max_retries = max_retries

    def fix_formula(self, request: FixFormulaRequest) -> FixFormulaResponse:
        payload = {
            "model": self._model,
            "messages": _messages(request),
            "stream": False,
            "options": {"temperature": 0.2},
        }

        def call() -> dict:
            resp = requests.post(f"{self.base_url}/api/chat", json=payload, timeout=self._timeout_s)
            resp.raise_for_status()
            return resp.json()

        data = _with_retries(call, max_retries=self._max_retries, what="Ollama fix request")
        try:
            content = data["message"]["content"] or ""
        except (KeyError, TypeError) as e:
            raise RepairError("Ollama returned a malformed response") from e
        return FixFormulaResponse(
            fixed_latex=_cleaned_or_raise(content, self.provider_name),
            model=data.get("model") or self._model,
        )

    def test_connection(self) -> bool:
        try:
            resp = requests.get(f"{self.base_url}/api/tags", timeout=self._timeout_s)
            return resp.status_code == 200
        except requests.RequestException as e:
            logger.info("Ollama connection test failed: %s", e)
            return False

    def list_models(self) -> list[str]:
        try:
            resp = requests.get(f"{self.base_url}/api/tags", timeout=self._timeout_s)
            resp.raise_for_status()
            return [m["name"] for m in resp.json().get("models", []) if m.get("name")]
        except (requests.RequestException, ValueError, KeyError, TypeError) as e:
            logger.info("Ollama model listing failed: %s", e)
            return []


def create_repair_client(settings: Settings) -> RepairClient:
    if settings.provider == "openai":
        if not settings.openai_api_key:
            raise RuntimeError("Missing OPENAI_API_KEY. Set it in the environment before running a repair.")
        return OpenAICompatibleClient(
            base_url=settings.openai_base_url,
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            provider_name="OpenAI",
            timeout_s=settings.timeout_s,
            max_retries=settings.max_retries,
        )
    if settings.provider == "lm-studio":
        return OpenAICompatibleClient(
            base_url=settings.lmstudio_base_url,
            model=settings.lmstudio_model,
            provider_name="LM Studio",
            timeout_s=settings.timeout_s,
            max_retries=settings.max_retries,
        )
    if settings.provider == "ollama":
        return OllamaClient(
            base_url=settings.ollama_base_url,
            model=settings.ollama_model,
            timeout_s=settings.timeout_s,
            max_retries=settings.max_retries,
        )
    raise ValueError(f"Unknown repair provider {settings.provider!r}")
