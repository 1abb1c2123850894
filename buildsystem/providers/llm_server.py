"""Provider for a self-hosted llm-server.

The server accepts ``POST /chat/completions`` with ``{model, messages}`` and
answers ``{"model": ..., "choices": [{"message": {"role", "content"}}]}``.
With ``"stream": true`` it answers server-sent events, one ``data: <json>``
line per chunk, terminated by ``data: [DONE]``.
"""

import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from ..errors import GenerationCallError
from ..http_pool import get_http_client
from .base import BaseLLMProvider, GenerationRequest, ModelResponse, ProviderConfig

logger = logging.getLogger(__name__)

DONE_MARKER = "[DONE]"


class LlamaServerProvider(BaseLLMProvider):
    """llm-server provider talking raw HTTP through the shared pool."""

    def __init__(
        self,
        config: ProviderConfig,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(config)
        self.base_url = (config.base_url or "http://localhost:3001").rstrip("/")
        self._http_client = http_client

    @property
    def http_client(self) -> httpx.AsyncClient:
        return self._http_client or get_http_client()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    def _payload(self, request: GenerationRequest, stream: bool) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": request.model,
            "messages": request.message_dicts(),
        }
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens
        if stream:
            payload["stream"] = True
        return payload

    async def query(self, request: GenerationRequest) -> ModelResponse:
        """
        Query a model via llm-server.

        Args:
            request: Model id and ordered messages

        Returns:
            ModelResponse with the assistant message content
        """
        try:
            response = await self.http_client.post(
                f"{self.base_url}/chat/completions",
                headers=self._headers(),
                json=self._payload(request, stream=False),
                timeout=self.config.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise GenerationCallError(f"llm-server request timed out: {e}") from e
        except httpx.HTTPStatusError as e:
            raise GenerationCallError(
                f"llm-server HTTP error: {e.response.status_code} - {e.response.text}"
            ) from e
        except httpx.HTTPError as e:
            raise GenerationCallError(f"llm-server query failed: {e}") from e
        except ValueError as e:
            raise GenerationCallError(f"llm-server returned invalid JSON: {e}") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise GenerationCallError(
                f"Malformed llm-server response for {request.model}: {e!r}"
            ) from e

        if not isinstance(content, str):
            raise GenerationCallError(
                f"Malformed llm-server response for {request.model}: content is not text"
            )

        usage = data.get("usage") or {}
        return ModelResponse(
            content=content,
            model=data.get("model"),
            prompt_tokens=usage.get("prompt_tokens"),
            completion_tokens=usage.get("completion_tokens"),
            total_tokens=usage.get("total_tokens"),
        )

    async def stream(self, request: GenerationRequest) -> AsyncIterator[str]:
        """Stream completion text chunks from the SSE endpoint."""
        try:
            async with self.http_client.stream(
                "POST",
                f"{self.base_url}/chat/completions",
                headers=self._headers(),
                json=self._payload(request, stream=True),
                timeout=self.config.timeout,
            ) as response:
                response.raise_for_status()
                async for line in response.aiter_lines():
                    if not line.startswith("data:"):
                        continue
                    data = line[len("data:"):].strip()
                    if data == DONE_MARKER:
                        return
                    text = _chunk_text(json.loads(data))
                    if text:
                        yield text
        except httpx.HTTPError as e:
            raise GenerationCallError(f"llm-server stream failed: {e}") from e
        except ValueError as e:
            raise GenerationCallError(f"llm-server sent an invalid chunk: {e}") from e

    async def get_models(self) -> List[str]:
        """Get model tags served by llm-server."""
        try:
            response = await self.http_client.get(
                f"{self.base_url}/tags", headers=self._headers()
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to fetch llm-server models: {e}")
            return []

        models = data.get("models", data.get("data", []))
        return [m.get("id") or m.get("name") for m in models if isinstance(m, dict)]

    @classmethod
    def validate_config(cls, config: ProviderConfig) -> bool:
        # llm-server runs without auth by default
        return True


def _chunk_text(chunk: Dict[str, Any]) -> str:
    """Pull the text out of one streamed chunk (OpenAI delta shape)."""
    if not isinstance(chunk, dict):
        raise ValueError(f"expected a JSON object, got {type(chunk).__name__}")
    choices = chunk.get("choices") or []
    if not choices:
        return ""
    delta = choices[0].get("delta") or choices[0].get("message") or {}
    return delta.get("content") or ""
