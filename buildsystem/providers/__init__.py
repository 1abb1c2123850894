"""Generation-service provider abstractions."""

from .base import (
    BaseLLMProvider,
    ChatMessage,
    GenerationRequest,
    ModelResponse,
    ProviderConfig,
)
from .llm_server import LlamaServerProvider
from .openai_provider import OpenAIProvider
from .registry import ProviderRegistry

__all__ = [
    "BaseLLMProvider",
    "ChatMessage",
    "GenerationRequest",
    "ModelResponse",
    "ProviderConfig",
    "LlamaServerProvider",
    "OpenAIProvider",
    "ProviderRegistry",
]
