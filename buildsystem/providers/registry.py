"""Provider registry for building the configured generation client."""

import logging
from typing import Dict, Optional, Type

import httpx

from .. import config as settings
from .base import BaseLLMProvider, ProviderConfig
from .llm_server import LlamaServerProvider
from .openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Registry mapping provider ids to provider classes."""

    PROVIDERS: Dict[str, Type[BaseLLMProvider]] = {
        "openai": OpenAIProvider,
        "llm_server": LlamaServerProvider,
    }

    def __init__(self):
        self._providers: Dict[str, BaseLLMProvider] = {}

    @classmethod
    def default_config(cls, provider_id: str) -> ProviderConfig:
        """
        Build a provider config from environment settings.

        Args:
            provider_id: "openai" or "llm_server"

        Returns:
            ProviderConfig for that provider
        """
        if provider_id == "openai":
            return ProviderConfig(
                provider_id=provider_id,
                api_key=settings.OPENAI_API_KEY,
                base_url=settings.OPENAI_BASE_URL,
                timeout=settings.REQUEST_TIMEOUT or 120.0,
            )
        if provider_id == "llm_server":
            return ProviderConfig(
                provider_id=provider_id,
                base_url=settings.LLM_SERVER_URL,
                timeout=settings.REQUEST_TIMEOUT or 120.0,
            )
        raise ValueError(f"Unknown provider: {provider_id}")

    def create(
        self,
        config: ProviderConfig,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> BaseLLMProvider:
        """
        Create and register a provider instance.

        Args:
            config: Provider configuration
            http_client: Shared pool to send requests through

        Returns:
            Provider instance

        Raises:
            ValueError: If the provider id is unknown or its key is missing
        """
        provider_class = self.PROVIDERS.get(config.provider_id)
        if not provider_class:
            raise ValueError(f"Unknown provider: {config.provider_id}")
        if not config.enabled:
            raise ValueError(f"Provider {config.provider_id} is disabled")

        if not provider_class.validate_config(config):
            raise ValueError(f"Provider {config.provider_id} has no API key configured")

        provider = provider_class(config, http_client=http_client)

        self._providers[config.provider_id] = provider
        logger.info(f"✓ Loaded provider: {config.provider_id}")
        return provider

    def get_provider(self, provider_id: str) -> Optional[BaseLLMProvider]:
        return self._providers.get(provider_id)

    def get_all_providers(self) -> Dict[str, BaseLLMProvider]:
        return self._providers.copy()
