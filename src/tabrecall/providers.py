"""Language-model providers expressed as capability interfaces.

Every provider can complete a prompt. Providers that can also turn text into
a vector implement ``EmbeddingCapable``; callers check the capability with
``supports_embeddings`` instead of comparing provider names.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from tabrecall.core.api_client import post_json, strip_think_tags
from tabrecall.core.exceptions import ConfigurationError, UpstreamError
from tabrecall.settings import Settings

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[Settings], "LanguageModelProvider"]


class LanguageModelProvider(ABC):
    """Text completion endpoint: prompt in, free text out."""

    name: str = ""

    def __init__(self, api_key: str, model: str, config: Dict[str, Any]):
        self.api_key = api_key
        self.model = model
        self.config = config

    @abstractmethod
    def complete(self, prompt: str, max_tokens: int = 200) -> str:
        """Send a single-turn prompt and return the reply text."""


class EmbeddingCapable(ABC):
    """Mixin for providers that expose an embedding endpoint."""

    embedding_model: str = ""

    @abstractmethod
    def embed(self, text: str) -> List[float]:
        """Return a fixed-length vector for ``text``."""


def supports_embeddings(provider: Optional[LanguageModelProvider]) -> bool:
    return isinstance(provider, EmbeddingCapable)


class AnthropicProvider(LanguageModelProvider):
    name = "anthropic"

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": self.config.get("api_version", "2023-06-01"),
        }

    def complete(self, prompt: str, max_tokens: int = 200) -> str:
        payload = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        body = post_json(self.config["url"], payload, self._headers(), label="anthropic")
        try:
            blocks = body["content"]
            text = "".join(
                block.get("text", "") for block in blocks if block.get("type", "text") == "text"
            )
        except (KeyError, TypeError, AttributeError) as exc:
            raise UpstreamError("anthropic response has no content blocks") from exc
        return strip_think_tags(text)


class OpenAIProvider(LanguageModelProvider, EmbeddingCapable):
    name = "openai"

    def __init__(self, api_key: str, model: str, config: Dict[str, Any]):
        super().__init__(api_key, model, config)
        self.embedding_model = config.get("embedding_model", "text-embedding-3-small")

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    def complete(self, prompt: str, max_tokens: int = 200) -> str:
        payload = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        body = post_json(self.config["url"], payload, self._headers(), label="openai")
        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise UpstreamError("openai response has no message content") from exc
        return strip_think_tags(content or "")

    def embed(self, text: str) -> List[float]:
        if not text or not text.strip():
            raise ValueError("Cannot embed empty text")
        payload = {"model": self.embedding_model, "input": text}
        body = post_json(
            self.config["embeddings_url"], payload, self._headers(), label="embedding"
        )
        try:
            vector = body["data"][0]["embedding"]
            return [float(value) for value in vector]
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise UpstreamError("embedding response has no vector") from exc


PROVIDER_CLASSES = {
    AnthropicProvider.name: AnthropicProvider,
    OpenAIProvider.name: OpenAIProvider,
}


def build_provider(settings: Settings) -> LanguageModelProvider:
    """Instantiate the configured provider or raise ``ConfigurationError``."""
    settings.validate()
    provider_cls = PROVIDER_CLASSES.get(settings.provider)
    if provider_cls is None:
        raise ConfigurationError(f"No implementation for provider '{settings.provider}'")
    api_key = settings.resolve_api_key()
    if not api_key:
        raise ConfigurationError(
            "API key not configured. Set it with `tabrecall settings --set api_key=...` "
            f"or the {settings.provider_config.get('api_key_env', 'provider')} environment variable."
        )
    model = settings.resolve_model()
    if not model:
        raise ConfigurationError(f"No model configured for provider '{settings.provider}'")
    logger.debug(f"Using provider {settings.provider} with model {model}")
    return provider_cls(api_key=api_key, model=model, config=settings.provider_config)
