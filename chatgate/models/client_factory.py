"""Client factory: turns a stored provider config into a live client handle."""

import logging
from typing import Callable, Dict, Optional, Type, TypeVar

import requests
from pydantic import ValidationError

from ..entities.config import (
    GenericConfig,
    ProxySetting,
    RawAzureConfig,
    RawClaudeConfig,
    RawConfig,
    RawDeepseekConfig,
    RawGoogleConfig,
    RawOllamaConfig,
    RawOpenAIConfig,
    RawXaiConfig,
)
from ..entities.providers import Providers
from ..utils.content_cache import ContentCache
from ..utils.exceptions import ConfigParseError, UnsupportedProviderError
from ..utils.http import build_http_session
from .base import BaseChatClient
from .claude_client import ClaudeClient
from .google_client import GoogleClient
from .ollama_client import OllamaClient
from .openai_client import (
    AzureClient,
    CustomClient,
    DeepseekClient,
    OpenAIClient,
    OpenrouterClient,
    XaiClient,
)

logger = logging.getLogger(__name__)

C = TypeVar("C", bound=RawConfig)

Builder = Callable[[GenericConfig, requests.Session, Optional[ContentCache]], BaseChatClient]


def _parse_config(config: GenericConfig, config_cls: Type[C]) -> C:
    try:
        return config_cls.model_validate_json(config.config or "")
    except ValidationError:
        raise ConfigParseError(config.config, config.provider) from None


def _openai_family(client_cls: Type[OpenAIClient]) -> Builder:
    def build(config, session, content_cache):
        raw = _parse_config(config, RawOpenAIConfig)
        return client_cls(
            session,
            api_key=raw.api_key,
            model=raw.model,
            endpoint=raw.endpoint,
            org_id=raw.org_id,
            content_cache=content_cache,
        )
    return build


def _compatible(client_cls: Type[OpenAIClient], config_cls: Type[RawConfig]) -> Builder:
    def build(config, session, content_cache):
        raw = _parse_config(config, config_cls)
        return client_cls(
            session,
            api_key=raw.api_key,
            model=raw.model,
            endpoint=raw.endpoint,
            content_cache=content_cache,
        )
    return build


def _azure(config, session, content_cache):
    raw = _parse_config(config, RawAzureConfig)
    return AzureClient(
        session,
        api_key=raw.api_key,
        endpoint=raw.endpoint,
        api_version=raw.api_version,
        deployment_id=raw.deployment_id,
        content_cache=content_cache,
    )


def _claude(config, session, content_cache):
    raw = _parse_config(config, RawClaudeConfig)
    return ClaudeClient(
        session,
        api_key=raw.api_key,
        model=raw.model,
        api_version=raw.api_version,
        endpoint=raw.endpoint,
        content_cache=content_cache,
    )


def _ollama(config, session, content_cache):
    raw = _parse_config(config, RawOllamaConfig)
    return OllamaClient(session, endpoint=raw.endpoint, model=raw.model, content_cache=content_cache)


def _google(config, session, content_cache):
    raw = _parse_config(config, RawGoogleConfig)
    return GoogleClient(
        session,
        api_key=raw.api_key,
        model=raw.model,
        api_version=raw.api_version,
        endpoint=raw.endpoint,
        content_cache=content_cache,
    )


class ClientFactory:
    """Factory for creating provider clients."""

    _builders: Dict[Providers, Builder] = {
        Providers.OPENAI: _openai_family(OpenAIClient),
        Providers.CUSTOM: _openai_family(CustomClient),
        Providers.OPENROUTER: _openai_family(OpenrouterClient),
        Providers.DEEPSEEK: _compatible(DeepseekClient, RawDeepseekConfig),
        Providers.XAI: _compatible(XaiClient, RawXaiConfig),
        Providers.AZURE: _azure,
        Providers.CLAUDE: _claude,
        Providers.OLLAMA: _ollama,
        Providers.GOOGLE: _google,
    }

    @classmethod
    def create_client(
        cls,
        config: GenericConfig,
        proxy: Optional[ProxySetting] = None,
        content_cache: Optional[ContentCache] = None,
    ) -> BaseChatClient:
        """
        Create a client handle for a stored provider config.

        No network I/O happens here; a missing model surfaces only when a
        request is built.

        Args:
            config: Stored provider config (raw JSON, camelCase keys)
            proxy: Optional proxy for the handle's HTTP session
            content_cache: Resolver for image references

        Returns:
            BaseChatClient for the provider

        Raises:
            UnsupportedProviderError: If the provider string is unknown
            ConfigParseError: If the config does not match the provider's shape
        """
        provider = Providers.parse(config.provider)
        builder = cls._builders.get(provider)
        if builder is None:
            raise UnsupportedProviderError(config.provider)

        session = build_http_session(proxy)
        try:
            client = builder(config, session, content_cache)
        except Exception:
            session.close()
            raise

        logger.info(f"Created {provider.value} client")
        return client


def resolve_client(
    config: GenericConfig,
    proxy: Optional[ProxySetting] = None,
    content_cache: Optional[ContentCache] = None,
) -> BaseChatClient:
    """Convenience function to resolve a stored config into a client handle."""
    return ClientFactory.create_client(config, proxy=proxy, content_cache=content_cache)
