"""Text generation backends: OpenAI chat completions and Anthropic messages."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from appforge.config.settings import Settings
from appforge.errors import GenerationError
from appforge.generation.prompts import SYSTEM_PROMPT

logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
    """Interface for a single prompt-in, text-out completion."""

    provider: str

    async def generate(self, prompt: str) -> str: ...


class OpenAIChatGenerator:
    """OpenAI adapter using the chat completions REST API."""

    provider = "openai"

    def __init__(
        self,
        *,
        api_key: str,
        model: str = "gpt-4-turbo-preview",
        base_url: str = "https://api.openai.com/v1",
        max_tokens: int = 8192,
        temperature: float = 0.7,
        timeout_s: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout_s = timeout_s
        self._transport = transport

    async def generate(self, prompt: str) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        response_json = await _post_json(
            f"{self.base_url}/chat/completions",
            payload,
            headers=headers,
            timeout_s=self.timeout_s,
            transport=self._transport,
            provider=self.provider,
            model=self.model,
        )
        return self._extract_content(response_json)

    @staticmethod
    def _extract_content(response_json: dict[str, Any]) -> str:
        choices = response_json.get("choices") or []
        if not choices or not isinstance(choices[0], dict):
            raise GenerationError("OpenAI response did not contain choices")

        message = choices[0].get("message") or {}
        content = message.get("content", "")
        if isinstance(content, str) and content.strip():
            return content
        if isinstance(content, list):
            text_segments: list[str] = []
            for item in content:
                if isinstance(item, dict):
                    text = item.get("text")
                    if isinstance(text, str):
                        text_segments.append(text)
            merged = "".join(text_segments).strip()
            if merged:
                return merged
        raise GenerationError("OpenAI response content could not be parsed as text")


class AnthropicMessagesGenerator:
    """Anthropic adapter using the messages REST API."""

    provider = "anthropic"
    api_version = "2023-06-01"

    def __init__(
        self,
        *,
        api_key: str,
        model: str = "claude-3-5-sonnet-20241022",
        base_url: str = "https://api.anthropic.com",
        max_tokens: int = 8192,
        timeout_s: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.max_tokens = max_tokens
        self.timeout_s = timeout_s
        self._transport = transport

    async def generate(self, prompt: str) -> str:
        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "system": SYSTEM_PROMPT,
            "messages": [{"role": "user", "content": prompt}],
        }
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": self.api_version,
            "content-type": "application/json",
        }
        response_json = await _post_json(
            f"{self.base_url}/v1/messages",
            payload,
            headers=headers,
            timeout_s=self.timeout_s,
            transport=self._transport,
            provider=self.provider,
            model=self.model,
        )
        return self._extract_content(response_json)

    @staticmethod
    def _extract_content(response_json: dict[str, Any]) -> str:
        blocks = response_json.get("content") or []
        texts = [
            block["text"]
            for block in blocks
            if isinstance(block, dict)
            and block.get("type", "text") == "text"
            and isinstance(block.get("text"), str)
        ]
        merged = "".join(texts).strip()
        if not merged:
            raise GenerationError("Anthropic response did not contain text content")
        return merged


def build_generator(settings: Settings) -> TextGenerator:
    """Pick the generation backend named by settings.llm_provider."""
    provider = settings.llm_provider.strip().lower()
    if provider == "openai":
        api_key = settings.openai_api_key
        if not api_key:
            raise RuntimeError("LLM provider 'openai' selected but OPENAI_API_KEY is not set.")
        return OpenAIChatGenerator(
            api_key=api_key,
            model=settings.openai_model,
            base_url=settings.openai_base_url,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
            timeout_s=settings.llm_timeout_s,
        )
    if provider == "anthropic":
        api_key = settings.anthropic_api_key
        if not api_key:
            raise RuntimeError(
                "LLM provider 'anthropic' selected but ANTHROPIC_API_KEY is not set."
            )
        return AnthropicMessagesGenerator(
            api_key=api_key,
            model=settings.anthropic_model,
            base_url=settings.anthropic_base_url,
            max_tokens=settings.llm_max_tokens,
            timeout_s=settings.llm_timeout_s,
        )
    raise RuntimeError(f"Unsupported LLM provider: {settings.llm_provider!r}")


async def _post_json(
    url: str,
    payload: dict[str, Any],
    *,
    headers: dict[str, str],
    timeout_s: float,
    transport: httpx.AsyncBaseTransport | None,
    provider: str,
    model: str,
) -> dict[str, Any]:
    logger.info("llm_request event=start provider=%s model=%s", provider, model)
    try:
        async with httpx.AsyncClient(timeout=timeout_s, transport=transport) as client:
            response = await client.post(url, json=payload, headers=headers)
    except httpx.TimeoutException as exc:
        raise GenerationError(f"{provider} request timed out after {timeout_s:.1f}s") from exc
    except httpx.HTTPError as exc:
        raise GenerationError(f"{provider} request failed: {exc}") from exc

    if response.is_error:
        raise GenerationError(
            f"{provider} request failed with status {response.status_code}: "
            f"{response.text[:400]}"
        )
    try:
        body = response.json()
    except ValueError as exc:
        raise GenerationError(f"{provider} returned non-JSON response") from exc
    if not isinstance(body, dict):
        raise GenerationError(f"{provider} response must be a JSON object")
    logger.info("llm_request event=completed provider=%s model=%s status=ok", provider, model)
    return body
