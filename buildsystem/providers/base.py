"""Base abstract class for generation-service providers."""

import hashlib
import json
from abc import ABC, abstractmethod
from typing import AsyncIterator, Dict, List, Optional, Tuple
from dataclasses import dataclass


@dataclass
class ProviderConfig:
    """Configuration for a provider."""

    provider_id: str
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    timeout: float = 120.0
    max_retries: int = 3
    enabled: bool = True


@dataclass(frozen=True)
class ChatMessage:
    """One role-tagged message of a completion request."""

    role: str
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class GenerationRequest:
    """Immutable completion request, built fresh for every call."""

    model: str
    messages: Tuple[ChatMessage, ...]
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None

    @classmethod
    def from_prompt(
        cls,
        model: str,
        prompt: str,
        role: str = "system",
        temperature: Optional[float] = None,
    ) -> "GenerationRequest":
        """Build a single-message request."""
        return cls(
            model=model,
            messages=(ChatMessage(role=role, content=prompt),),
            temperature=temperature,
        )

    def message_dicts(self) -> List[Dict[str, str]]:
        return [message.to_dict() for message in self.messages]

    def fingerprint(self) -> str:
        """Stable hash of the request, used to recognise replayed calls."""
        raw = json.dumps(
            {
                "model": self.model,
                "messages": self.message_dicts(),
                "temperature": self.temperature,
                "max_tokens": self.max_tokens,
            },
            sort_keys=True,
        )
        return hashlib.sha1(raw.encode("utf-8")).hexdigest()


@dataclass
class ModelResponse:
    """Response from a generation model."""

    content: str
    model: Optional[str] = None
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None


class BaseLLMProvider(ABC):
    """Abstract base class for generation-service providers.

    Providers are stateless apart from their connection pool and can be
    shared by every handler and run of a process.
    """

    def __init__(self, config: ProviderConfig):
        self.config = config

    @abstractmethod
    async def query(self, request: GenerationRequest) -> ModelResponse:
        """
        Send one completion request.

        Args:
            request: Model id and ordered messages

        Returns:
            ModelResponse with content and usage metadata

        Raises:
            GenerationCallError: On network, timeout or malformed-response errors
        """
        pass

    @abstractmethod
    def stream(self, request: GenerationRequest) -> AsyncIterator[str]:
        """
        Stream one completion as text chunks.

        The iterator is finite and cannot be restarted.
        """
        pass

    async def complete(self, request: GenerationRequest) -> str:
        """Send one request and return only the completion text."""
        response = await self.query(request)
        return response.content

    def complete_stream(self, request: GenerationRequest) -> AsyncIterator[str]:
        """Alias of stream() matching complete()."""
        return self.stream(request)

    async def get_models(self) -> List[str]:
        """
        Get list of available models for this provider.

        Returns:
            List of model identifiers
        """
        return []

    @classmethod
    def validate_config(cls, config: ProviderConfig) -> bool:
        """
        Validate that the API key is configured.

        Returns:
            True if valid, False otherwise
        """
        return config.api_key is not None and len(config.api_key) > 0
