#!/usr/bin/env python3
"""
LLM access for the overall news sentiment score.

One provider is active per process, chosen by LLM_PROVIDER. SDKs are
imported only when their provider is created, so an unset provider costs
nothing and the lexicon fallback is used instead.

Environment Variables:
    LLM_PROVIDER: gemini, openai or anthropic (unset disables AI scoring)
    LLM_MODEL: model name (optional, provider default otherwise)
    LLM_TIMEOUT_SECONDS: deadline for a single generation (default 30)
    GOOGLE_API_KEY or GEMINI_API_KEY, OPENAI_API_KEY, ANTHROPIC_API_KEY
"""

import logging
import os
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Optional

from settings import get_settings

logger = logging.getLogger(__name__)

MAX_OUTPUT_TOKENS = 1024


class LLMError(Exception):
    """Base exception for LLM-related errors."""


class ProviderNotFoundError(LLMError):
    """LLM_PROVIDER names a provider we do not know."""


class ModelNotFoundError(LLMError):
    """The provider rejected the configured model."""


class ConfigurationError(LLMError):
    """Missing API key or SDK for the selected provider."""


class LLMTimeoutError(LLMError):
    """Raised when a generation does not finish before its deadline."""


def _api_key(*names: str) -> str:
    for name in names:
        value = os.environ.get(name)
        if value:
            return value
    raise ConfigurationError(
        f"{' or '.join(names)} environment variable is required"
    )


def _looks_like_missing_model(error: Exception) -> bool:
    text = str(error).lower()
    return "model" in text and ("not found" in text or "does not exist" in text or "invalid" in text)


class BaseLLMProvider(ABC):
    """A configured SDK client that turns a prompt into text.

    Subclasses set `name` and `default_model`, build their client in
    `_connect()` and implement `_complete()`. Errors from the SDK are mapped
    to LLMError / ModelNotFoundError here.
    """

    name = ""
    default_model = ""

    def __init__(self, model: Optional[str] = None, timeout: Optional[float] = None):
        self.model = model or self.default_model
        self.timeout = timeout or get_settings().llm_timeout_seconds
        self._client = self._connect()

    @property
    def provider_name(self) -> str:
        return self.name

    @abstractmethod
    def _connect(self):
        """Build the SDK client; raise ConfigurationError when that is impossible."""

    @abstractmethod
    def _complete(self, prompt: str) -> str:
        """Send the prompt and return the reply text."""

    def generate_text(self, prompt: str) -> str:
        try:
            return self._complete(prompt)
        except LLMError:
            raise
        except Exception as e:
            if _looks_like_missing_model(e):
                raise ModelNotFoundError(f"{self.name} model '{self.model}' not available: {e}") from e
            raise LLMError(f"{self.name} generation failed: {e}") from e


class GeminiProvider(BaseLLMProvider):
    name = "gemini"
    default_model = "gemini-1.5-flash"

    def _connect(self):
        api_key = _api_key("GOOGLE_API_KEY", "GEMINI_API_KEY")
        try:
            import google.generativeai as genai
        except ImportError as e:
            raise ConfigurationError(
                "google-generativeai package is required. Install with: pip install google-generativeai"
            ) from e
        genai.configure(api_key=api_key)
        return genai.GenerativeModel(
            self.model,
            generation_config={"temperature": 0.0, "max_output_tokens": MAX_OUTPUT_TOKENS},
        )

    def _complete(self, prompt: str) -> str:
        response = self._client.generate_content(prompt, request_options={"timeout": self.timeout})
        return response.text


class OpenAIProvider(BaseLLMProvider):
    name = "openai"
    default_model = "gpt-4o-mini"

    def _connect(self):
        api_key = _api_key("OPENAI_API_KEY")
        try:
            from openai import OpenAI
        except ImportError as e:
            raise ConfigurationError("openai package is required. Install with: pip install openai") from e
        return OpenAI(api_key=api_key, timeout=self.timeout, max_retries=1)

    def _complete(self, prompt: str) -> str:
        response = self._client.chat.completions.create(
            model=self.model,
            temperature=0,
            max_tokens=MAX_OUTPUT_TOKENS,
            messages=[{"role": "user", "content": prompt}],
        )
        return response.choices[0].message.content or ""


class AnthropicProvider(BaseLLMProvider):
    name = "anthropic"
    default_model = "claude-3-5-sonnet-20241022"

    def _connect(self):
        api_key = _api_key("ANTHROPIC_API_KEY")
        try:
            import anthropic
        except ImportError as e:
            raise ConfigurationError("anthropic package is required. Install with: pip install anthropic") from e
        return anthropic.Anthropic(api_key=api_key, timeout=self.timeout, max_retries=1)

    def _complete(self, prompt: str) -> str:
        response = self._client.messages.create(
            model=self.model,
            max_tokens=MAX_OUTPUT_TOKENS,
            temperature=0,
            messages=[{"role": "user", "content": prompt}],
        )
        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )


class LLMProviderFactory:
    """Maps provider names (and a few aliases) to provider classes."""

    _providers: dict[str, type[BaseLLMProvider]] = {
        "gemini": GeminiProvider,
        "google": GeminiProvider,
        "openai": OpenAIProvider,
        "gpt": OpenAIProvider,
        "anthropic": AnthropicProvider,
        "claude": AnthropicProvider,
    }

    @classmethod
    def register_provider(cls, name: str, provider_class: type[BaseLLMProvider]) -> None:
        cls._providers[name.lower()] = provider_class

    @classmethod
    def known_providers(cls) -> str:
        return ", ".join(sorted({p.name for p in cls._providers.values() if p.name}))

    @classmethod
    def create(cls, provider_name: Optional[str] = None,
               model: Optional[str] = None) -> BaseLLMProvider:
        """Create a provider from explicit params or the current settings."""
        settings = get_settings()
        provider_name = provider_name or settings.llm_provider
        if not provider_name:
            raise ConfigurationError(
                f"LLM_PROVIDER environment variable is required. Available: {cls.known_providers()}"
            )

        provider_class = cls._providers.get(provider_name.strip().lower())
        if provider_class is None:
            raise ProviderNotFoundError(
                f"Unknown provider '{provider_name}'. Available: {cls.known_providers()}"
            )

        provider = provider_class(model=model or settings.llm_model)
        logger.info("LLM provider ready: %s (%s)", provider.name, provider.model)
        return provider


_provider_instance: Optional[BaseLLMProvider] = None


def _get_provider() -> BaseLLMProvider:
    global _provider_instance
    if _provider_instance is None:
        _provider_instance = LLMProviderFactory.create()
    return _provider_instance


def is_configured() -> bool:
    """True when an LLM provider has been selected."""
    return get_settings().llm_configured


def generate(prompt: str, timeout: Optional[float] = None) -> str:
    """
    Generate text from a prompt using the configured LLM provider.

    Args:
        prompt: The input prompt.
        timeout: Seconds to wait for the response; None waits for the SDK's
            own request timeout.

    Raises:
        ConfigurationError: If the provider is not configured properly.
        LLMTimeoutError: If the deadline passes before a response arrives.
        LLMError: If text generation fails.
    """
    provider = _get_provider()
    if timeout is None:
        return provider.generate_text(prompt)

    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(provider.generate_text, prompt)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError:
        future.cancel()
        raise LLMTimeoutError(f"{provider.name} did not respond within {timeout:g}s")
    finally:
        executor.shutdown(wait=False)


def reset_provider() -> None:
    """Forget the active provider so the next call re-reads settings."""
    global _provider_instance
    _provider_instance = None


def get_provider_info() -> dict:
    """Describe the current provider configuration without raising."""
    settings = get_settings()
    if not settings.llm_configured:
        return {"provider": "not set", "model": "not set", "status": "disabled"}
    try:
        provider = _get_provider()
    except LLMError as e:
        return {
            "provider": settings.llm_provider,
            "model": settings.llm_model or "default",
            "status": "error",
            "error": str(e),
        }
    return {"provider": provider.name, "model": provider.model, "status": "ready"}
