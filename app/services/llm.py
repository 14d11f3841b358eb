# =============================================================================
# Generation Capability — Anthropic / OpenAI-Compatible Providers
# =============================================================================
#
# The Questioner and Responder only see the LLMProvider protocol. Two SDK
# backends implement it; which one is built is a config choice
# (LLM_PROVIDER).
#
# FAILURE CONTRACT:
#   - building a provider without an API key, or with generation disabled
#                                                  → ProviderUnavailable
#   - any SDK error inside complete()              → GenerationFailed
# Both derive from GenerationDegraded. The agents catch that single class
# and fall back to their deterministic banks / templates.
#
#   LLMProvider (Protocol)
#   ├── AnthropicProvider        — system prompt as top-level `system=`
#   ├── OpenAICompatibleProvider — system prompt as the first message
#   ├── get_llm_provider()       — cached provider, raises when unavailable
#   └── get_optional_llm_provider() — same, None when unavailable
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from app.config import Settings, settings
from app.errors import GenerationFailed, ProviderUnavailable

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Provider-neutral completion result."""

    content: str
    model: str
    input_tokens: int
    output_tokens: int


class LLMProvider(Protocol):
    """
    Anything with a matching `complete()` coroutine.

    The tests plug in AsyncMock objects here.
    """

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """
        Run one completion.

        `messages` holds only "user" / "assistant" turns; the system prompt
        goes in `system`. Unset temperature / max_tokens use the config.

        Raises:
            GenerationFailed: transport, quota or API errors.
        """
        ...


# ---------------------------------------------------------------------------
# Anthropic (Claude)
# ---------------------------------------------------------------------------


class AnthropicProvider:
    """Claude through the native Anthropic SDK."""

    def __init__(self, config: Settings | None = None) -> None:
        from anthropic import AsyncAnthropic

        config = config or settings
        api_key = config.llm_api_key or config.anthropic_api_key
        if not api_key:
            raise ProviderUnavailable(
                "No Anthropic API key configured. Set LLM_API_KEY or "
                "ANTHROPIC_API_KEY in .env"
            )

        self._client = AsyncAnthropic(api_key=api_key)
        self._config = config
        logger.info("Initialized AnthropicProvider (model=%s)", config.llm_model)

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        from anthropic import APIError

        request: dict = {
            "model": self._config.llm_model,
            "messages": messages,
            "max_tokens": max_tokens or self._config.llm_max_tokens,
            "temperature": self._config.llm_temperature if temperature is None else temperature,
        }
        if system:
            request["system"] = system

        try:
            response = await self._client.messages.create(**request)
        except APIError as exc:
            raise GenerationFailed(f"Anthropic request failed: {exc}") from exc

        text = next(
            (block.text for block in response.content if block.type == "text"), "",
        )
        return LLMResponse(
            content=text,
            model=response.model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )


# ---------------------------------------------------------------------------
# OpenAI-compatible (OpenAI, DeepSeek, Qwen, local gateways...)
# ---------------------------------------------------------------------------


class OpenAICompatibleProvider:
    """
    Any chat-completions API that follows the OpenAI wire format.

        LLM_PROVIDER=openai_compatible
        LLM_BASE_URL=https://api.deepseek.com/v1
        LLM_API_KEY=your-key
        LLM_MODEL=deepseek-chat
    """

    def __init__(self, config: Settings | None = None) -> None:
        from openai import AsyncOpenAI

        config = config or settings
        api_key = config.llm_api_key or config.openai_api_key
        if not api_key:
            raise ProviderUnavailable(
                "No API key configured for OpenAI-compatible provider. "
                "Set LLM_API_KEY in .env"
            )

        client_kwargs: dict = {"api_key": api_key}
        if config.llm_base_url:
            client_kwargs["base_url"] = config.llm_base_url

        self._client = AsyncOpenAI(**client_kwargs)
        self._config = config
        logger.info(
            "Initialized OpenAICompatibleProvider (model=%s, base_url=%s)",
            config.llm_model,
            config.llm_base_url or "https://api.openai.com/v1",
        )

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        from openai import OpenAIError

        chat = [{"role": "system", "content": system}] if system else []
        chat.extend(messages)

        try:
            response = await self._client.chat.completions.create(
                model=self._config.llm_model,
                messages=chat,
                max_tokens=max_tokens or self._config.llm_max_tokens,
                temperature=self._config.llm_temperature if temperature is None else temperature,
            )
        except OpenAIError as exc:
            raise GenerationFailed(f"OpenAI-compatible request failed: {exc}") from exc

        usage = response.usage
        return LLMResponse(
            content=response.choices[0].message.content or "",
            model=response.model or self._config.llm_model,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
        )


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

# Built once per process; the SDK clients keep their own connection pools.
_provider: AnthropicProvider | OpenAICompatibleProvider | None = None


def get_llm_provider() -> AnthropicProvider | OpenAICompatibleProvider:
    """
    Return the provider selected by LLM_PROVIDER.

    Raises:
        ProviderUnavailable: generation is disabled or no key is set.
    """
    global _provider
    if not settings.generation_enabled:
        raise ProviderUnavailable("Generation is disabled (GENERATION_ENABLED=false)")
    if _provider is None:
        if settings.llm_provider == "openai_compatible":
            _provider = OpenAICompatibleProvider(settings)
        else:
            _provider = AnthropicProvider(settings)
    return _provider


def get_optional_llm_provider() -> LLMProvider | None:
    """
    Like get_llm_provider(), but None when generation is unavailable.

    Sessions built with None speak only through the deterministic
    fallbacks.
    """
    try:
        return get_llm_provider()
    except ProviderUnavailable as exc:
        logger.info("Generation capability unavailable, using fallbacks: %s", exc)
        return None
