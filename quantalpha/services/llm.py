# =============================================================================
# Multi-Provider LLM Abstraction — Pluggable AI Backend per Seat
# =============================================================================
#
# Provides a common interface for LLM completions, with concrete
# implementations for Anthropic (Claude) and OpenAI-compatible APIs
# (Gemini's compatibility endpoint, DeepSeek).
#
# DESIGN DECISION: Protocol (structural typing) over ABC.
# Any class with the right `complete()` method works, which keeps test
# doubles (AsyncMock) trivial.
#
# DESIGN DECISION: Native SDKs over LangChain wrappers.
# Using anthropic and openai SDKs directly gives direct control over
# request parameters and easier debugging.
#
# DESIGN DECISION: One provider instance per seat per stage.
# Each seat carries its own provider, model, temperature and (optionally)
# request-scoped API key, so there is no process-wide singleton.
#
# ARCHITECTURE:
#   LLMProvider (Protocol)
#   ├── AnthropicProvider         — Claude via native Anthropic SDK
#   ├── OpenAICompatibleProvider  — Gemini / DeepSeek via OpenAI SDK
#   ├── ApiKeys                   — request-scoped key overrides
#   └── create_agent_provider()   — resolves AgentConfig.model_provider
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from quantalpha.agents.roles import AgentConfig, ModelProvider
from quantalpha.config import settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass
class LLMResponse:
    """
    Standardised response from any LLM provider.

    Normalises the different response formats (Anthropic vs OpenAI)
    into a single structure that downstream code can consume.
    """

    content: str           # The generated text
    model: str             # Model identifier (e.g., "deepseek-chat")
    input_tokens: int      # Tokens consumed by the prompt
    output_tokens: int     # Tokens generated in the response


@dataclass(frozen=True)
class ApiKeys:
    """
    API keys supplied with a run. Empty fields fall back to settings.

    Never exposed through the HTTP surface.
    """

    gemini: str | None = None
    deepseek: str | None = None
    anthropic: str | None = None
    juhe: str | None = None

    def for_provider(self, provider: ModelProvider) -> str | None:
        """Resolve the key for a provider: request key, then settings."""
        if provider is ModelProvider.GEMINI:
            return self.gemini or settings.gemini_api_key or None
        if provider is ModelProvider.DEEPSEEK:
            return self.deepseek or settings.deepseek_api_key or None
        return self.anthropic or settings.anthropic_api_key or None

    def market_data_key(self) -> str | None:
        return self.juhe or settings.juhe_api_key or None


# ---------------------------------------------------------------------------
# Protocol Definition
# ---------------------------------------------------------------------------


class LLMProvider(Protocol):
    """
    Protocol defining the LLM provider interface.

    Both Anthropic and OpenAI-compatible implementations must provide
    the `complete()` method. Checked statically by mypy.
    """

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """
        Generate a completion from the LLM.

        Args:
            messages: Conversation messages as dicts with "role" and "content".
                Roles: "user", "assistant" (no "system" — use the system param).
            system: System prompt for the LLM. Handled differently per provider:
                - Anthropic: top-level `system=` kwarg
                - OpenAI: prepended as {"role": "system", ...} message
            temperature: Sampling temperature. 0.0 is a valid value.
            max_tokens: Override max output tokens (default from config).

        Returns:
            LLMResponse with generated text and usage metrics.
        """
        ...


# ---------------------------------------------------------------------------
# Implementation 1: Anthropic (Claude)
# ---------------------------------------------------------------------------


class AnthropicProvider:
    """
    Anthropic Claude provider using the native SDK.

    KEY API DIFFERENCE: Anthropic takes system prompts as a top-level
    `system=` kwarg, NOT as a message with role "system".
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        default_temperature: float = 0.3,
    ) -> None:
        from anthropic import AsyncAnthropic

        resolved_key = api_key or settings.anthropic_api_key
        if not resolved_key:
            raise ValueError(
                "No Anthropic API key configured. Provide one with the "
                "request or set ANTHROPIC_API_KEY in .env"
            )

        self._client = AsyncAnthropic(api_key=resolved_key)
        self._model = model or "claude-sonnet-4-6"
        self._temperature = default_temperature
        self._max_tokens = settings.llm_max_tokens

        logger.info("Initialized AnthropicProvider (model=%s)", self._model)

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Generate a completion using Claude."""
        kwargs: dict = {
            "model": self._model,
            "messages": messages,
            "max_tokens": max_tokens or self._max_tokens,
            "temperature": (
                temperature if temperature is not None else self._temperature
            ),
        }

        # Anthropic: system prompt is a top-level kwarg, not a message
        if system:
            kwargs["system"] = system

        response = await self._client.messages.create(**kwargs)

        # Extract text from the first content block
        content = ""
        for block in response.content:
            if block.type == "text":
                content = block.text
                break

        return LLMResponse(
            content=content,
            model=response.model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )


# ---------------------------------------------------------------------------
# Implementation 2: OpenAI-Compatible (Gemini, DeepSeek)
# ---------------------------------------------------------------------------


class OpenAICompatibleProvider:
    """
    OpenAI-compatible provider for any API that follows the OpenAI spec.

    Gemini exposes an OpenAI-compatible endpoint and DeepSeek's API is
    OpenAI-compatible natively, so a single implementation with a custom
    base_url serves both.
    """

    def __init__(
        self,
        api_key: str | None,
        model: str,
        base_url: str | None = None,
        default_temperature: float = 0.3,
    ) -> None:
        from openai import AsyncOpenAI

        if not api_key:
            raise ValueError(
                f"No API key configured for model '{model}'. Provide one "
                "with the request or set it in .env"
            )

        client_kwargs: dict = {"api_key": api_key}
        if base_url:
            client_kwargs["base_url"] = base_url

        self._client = AsyncOpenAI(**client_kwargs)
        self._model = model
        self._temperature = default_temperature
        self._max_tokens = settings.llm_max_tokens

        logger.info(
            "Initialized OpenAICompatibleProvider (model=%s, base_url=%s)",
            self._model,
            base_url or "https://api.openai.com/v1",
        )

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Generate a completion using an OpenAI-compatible API."""
        # OpenAI: system prompt goes as the first message
        all_messages: list[dict[str, str]] = []
        if system:
            all_messages.append({"role": "system", "content": system})
        all_messages.extend(messages)

        response = await self._client.chat.completions.create(
            model=self._model,
            messages=all_messages,
            max_tokens=max_tokens or self._max_tokens,
            temperature=(
                temperature if temperature is not None else self._temperature
            ),
        )

        content = response.choices[0].message.content or ""

        # Token counts: OpenAI uses different field names than Anthropic
        usage = response.usage
        input_tokens = usage.prompt_tokens if usage else 0
        output_tokens = usage.completion_tokens if usage else 0

        return LLMResponse(
            content=content,
            model=response.model or self._model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )


# ---------------------------------------------------------------------------
# Provider Resolution
# ---------------------------------------------------------------------------


def create_agent_provider(
    config: AgentConfig,
    api_keys: ApiKeys | None = None,
) -> LLMProvider:
    """
    Build a fresh provider for one seat from its AgentConfig.

    Args:
        config: The seat's configuration (provider, model, temperature).
        api_keys: Request-scoped keys; settings fill in anything missing.

    Returns:
        A new provider instance bound to the seat's model.

    Raises:
        ValueError: If the API key for the seat's provider is missing.
    """
    keys = api_keys or ApiKeys()
    api_key = keys.for_provider(config.model_provider)

    if config.model_provider is ModelProvider.GEMINI:
        return OpenAICompatibleProvider(
            api_key=api_key,
            model=config.model_name,
            base_url=settings.gemini_base_url,
            default_temperature=config.temperature,
        )
    if config.model_provider is ModelProvider.DEEPSEEK:
        return OpenAICompatibleProvider(
            api_key=api_key,
            model=config.model_name,
            base_url=settings.deepseek_base_url,
            default_temperature=config.temperature,
        )
    return AnthropicProvider(
        api_key=api_key,
        model=config.model_name,
        default_temperature=config.temperature,
    )
