"""OpenAI-compatible provider built on the OpenAI SDK."""

import logging
from typing import AsyncIterator, List, Optional, cast

import httpx
import openai
from openai import AsyncOpenAI
from openai.types.chat import ChatCompletionMessageParam

from ..errors import GenerationCallError
from .base import BaseLLMProvider, GenerationRequest, ModelResponse, ProviderConfig

logger = logging.getLogger(__name__)


class OpenAIProvider(BaseLLMProvider):
    """Provider for api.openai.com or any endpoint speaking its chat API."""

    def __init__(
        self,
        config: ProviderConfig,
        http_client: Optional[httpx.AsyncClient] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        super().__init__(config)
        self.client = client or AsyncOpenAI(
            api_key=config.api_key,
            base_url=config.base_url,
            timeout=config.timeout,
            max_retries=config.max_retries,
            http_client=http_client,
        )

    def _create_kwargs(self, request: GenerationRequest) -> dict:
        kwargs = {
            "model": request.model,
            "messages": cast(
                List[ChatCompletionMessageParam], request.message_dicts()
            ),
        }
        if request.temperature is not None:
            kwargs["temperature"] = request.temperature
        if request.max_tokens is not None:
            kwargs["max_tokens"] = request.max_tokens
        return kwargs

    async def query(self, request: GenerationRequest) -> ModelResponse:
        """
        Query a model via the chat completions endpoint.

        Args:
            request: Model id and ordered messages

        Returns:
            ModelResponse with content and token usage
        """
        try:
            response = await self.client.chat.completions.create(
                **self._create_kwargs(request)
            )
        except openai.APITimeoutError as e:
            raise GenerationCallError(f"OpenAI request timed out: {e}") from e
        except openai.APIStatusError as e:
            raise GenerationCallError(
                f"OpenAI HTTP error: {e.status_code} - {e.message}"
            ) from e
        except openai.APIError as e:
            raise GenerationCallError(f"OpenAI query failed: {e}") from e

        if not response.choices or response.choices[0].message is None:
            raise GenerationCallError(
                f"Malformed response from {request.model}: no choices"
            )

        content = response.choices[0].message.content
        if content is None:
            raise GenerationCallError(
                f"Malformed response from {request.model}: empty message"
            )

        usage = response.usage
        return ModelResponse(
            content=content,
            model=response.model,
            prompt_tokens=getattr(usage, "prompt_tokens", None),
            completion_tokens=getattr(usage, "completion_tokens", None),
            total_tokens=getattr(usage, "total_tokens", None),
        )

    async def stream(self, request: GenerationRequest) -> AsyncIterator[str]:
        """Stream completion text chunks."""
        try:
            chunks = await self.client.chat.completions.create(
                stream=True, **self._create_kwargs(request)
            )
            async for chunk in chunks:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        except openai.APIError as e:
            raise GenerationCallError(f"OpenAI stream failed: {e}") from e

    async def get_models(self) -> List[str]:
        try:
            page = await self.client.models.list()
        except openai.APIError as e:
            logger.warning(f"Failed to fetch OpenAI models: {e}")
            return []
        return [model.id for model in page.data]
