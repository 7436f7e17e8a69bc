"""Tests for provider selection and the generation deadline."""

import time

import pytest

import llm_provider
from llm_provider import (
    BaseLLMProvider,
    ConfigurationError,
    LLMError,
    LLMProviderFactory,
    LLMTimeoutError,
    ModelNotFoundError,
    ProviderNotFoundError,
    generate,
    get_provider_info,
    is_configured,
)
from settings import reset_settings


class MockProvider(BaseLLMProvider):
    """Provider that answers from memory, optionally after a delay."""

    name = "mock"
    default_model = "mock-1"
    delay = 0.0
    reply = '{"score": 0.2}'

    def _connect(self):
        return object()

    def _complete(self, prompt: str) -> str:
        if self.delay:
            time.sleep(self.delay)
        return self.reply


class SlowProvider(MockProvider):
    delay = 0.5


@pytest.fixture
def mock_provider(monkeypatch):
    monkeypatch.setitem(LLMProviderFactory._providers, "mock", MockProvider)
    monkeypatch.setitem(LLMProviderFactory._providers, "slow", SlowProvider)


def _configure(monkeypatch, provider, model=None):
    monkeypatch.setenv("LLM_PROVIDER", provider)
    if model:
        monkeypatch.setenv("LLM_MODEL", model)
    reset_settings()
    llm_provider.reset_provider()


def test_disabled_without_provider():
    assert not is_configured()
    assert get_provider_info() == {"provider": "not set", "model": "not set", "status": "disabled"}


def test_factory_requires_provider():
    with pytest.raises(ConfigurationError):
        LLMProviderFactory.create()


def test_factory_unknown_provider():
    with pytest.raises(ProviderNotFoundError):
        LLMProviderFactory.create("nope")


def test_factory_uses_settings(monkeypatch, mock_provider):
    _configure(monkeypatch, "mock", model="mock-large")

    provider = LLMProviderFactory.create()

    assert provider.provider_name == "mock"
    assert provider.model == "mock-large"


def test_provider_info_ready(monkeypatch, mock_provider):
    _configure(monkeypatch, "Mock")

    assert is_configured()
    assert get_provider_info() == {"provider": "mock", "model": "mock-1", "status": "ready"}


def test_provider_info_reports_setup_errors(monkeypatch):
    _configure(monkeypatch, "openai")

    info = get_provider_info()

    assert info["status"] == "error"
    assert "OPENAI_API_KEY" in info["error"]


def test_generate_returns_text(monkeypatch, mock_provider):
    _configure(monkeypatch, "mock")

    assert generate("prompt") == '{"score": 0.2}'
    assert generate("prompt", timeout=5) == '{"score": 0.2}'


def test_generate_deadline(monkeypatch, mock_provider):
    _configure(monkeypatch, "slow")

    with pytest.raises(LLMTimeoutError):
        generate("prompt", timeout=0.05)


def test_timeout_defaults_to_settings(monkeypatch, mock_provider):
    monkeypatch.setenv("LLM_TIMEOUT_SECONDS", "12")
    _configure(monkeypatch, "mock")

    assert LLMProviderFactory.create().timeout == 12.0


class BrokenProvider(MockProvider):
    error = RuntimeError("rate limited")

    def _complete(self, prompt: str) -> str:
        raise self.error


def test_sdk_errors_are_mapped():
    provider = BrokenProvider()
    with pytest.raises(LLMError):
        provider.generate_text("prompt")

    provider.error = RuntimeError("The model `gpt-9` does not exist")
    with pytest.raises(ModelNotFoundError):
        provider.generate_text("prompt")


def test_provider_without_client_hooks_cannot_be_created():
    class Incomplete(BaseLLMProvider):
        name = "incomplete"

    with pytest.raises(TypeError):
        Incomplete()
