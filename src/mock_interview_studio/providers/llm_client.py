"""
LLM client for interviewer replies.

Talks to a local Ollama server over its HTTP chat API. Sampling options are
passed per request so the interviewer persona can be tuned without touching
the model file.
"""

import logging
from typing import Any

import httpx
from pydantic import BaseModel, Field

from mock_interview_studio.config import get_settings
from mock_interview_studio.orchestrator.schemas import ChatMessage, SamplingParams
from mock_interview_studio.providers.base import TextReplyGenerator

logger = logging.getLogger(__name__)

DEFAULT_OLLAMA_MODEL = "llama3.1:8b"


class LLMResponse(BaseModel):
    """Response from an LLM."""

    content: str = Field(..., description="Generated text content")
    finish_reason: str = Field(default="stop", description="Reason for completion")
    usage: dict[str, int] = Field(
        default_factory=dict,
        description="Token usage information",
    )
    model: str = Field(default="", description="Model used for generation")


class OllamaError(Exception):
    """Exception raised when the Ollama API fails."""

    def __init__(self, message: str, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class OllamaReplyGenerator(TextReplyGenerator):
    """
    Ollama-based reply generator.

    Posts the conversation to /api/chat with streaming disabled and returns
    the assistant message content.
    """

    def __init__(
        self,
        model: str | None = None,
        base_url: str | None = None,
        max_retries: int | None = None,
        timeout: int | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the Ollama client.

        Args:
            model: Model name (uses config if not provided).
            base_url: Ollama server URL (uses config if not provided).
            max_retries: Number of retries on failure (uses config if not provided).
            timeout: Request timeout in seconds (uses config if not provided).
            client: Preconfigured HTTP client, mainly for tests.
        """
        settings = get_settings()
        self._model = model or settings.llm_model_name or DEFAULT_OLLAMA_MODEL
        self._base_url = base_url or settings.llm_base_url
        self._max_retries = settings.llm_max_retries if max_retries is None else max_retries
        self._timeout = timeout or settings.llm_timeout
        self._client = client

        logger.info(f"Initialized Ollama reply generator with model: {self._model}")

    @property
    def model(self) -> str:
        """Get the model name."""
        return self._model

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _build_payload(self, messages: list[ChatMessage], sampling: SamplingParams) -> dict[str, Any]:
        return {
            "model": self._model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "stream": False,
            "options": {
                "temperature": sampling.temperature,
                "top_p": sampling.top_p,
                "num_predict": sampling.max_tokens,
            },
        }

    async def chat(self, messages: list[ChatMessage], sampling: SamplingParams) -> LLMResponse:
        """
        Generate a chat completion with retry logic.

        Args:
            messages: Conversation history.
            sampling: Sampling policy.

        Returns:
            Generated response.

        Raises:
            OllamaError: If Ollama fails after all retries.
        """
        client = await self._get_client()
        payload = self._build_payload(messages, sampling)

        last_error: OllamaError | None = None
        attempts = 0

        while attempts <= self._max_retries:
            attempts += 1
            try:
                logger.debug(f"Calling Ollama /api/chat (attempt {attempts}) with {len(messages)} messages")
                response = await client.post("/api/chat", json=payload)
            except httpx.HTTPError as e:
                logger.warning(f"Ollama request failed (attempt {attempts}): {e}")
                last_error = OllamaError(f"Ollama request failed: {e}")
                continue

            if response.status_code != 200:
                logger.warning(f"Ollama returned {response.status_code} (attempt {attempts})")
                last_error = OllamaError(
                    f"Ollama returned HTTP {response.status_code}",
                    status_code=response.status_code,
                    body=response.text,
                )
                continue

            data = response.json()
            message = data.get("message") or {}
            usage = {
                k: int(data[k])
                for k in ("prompt_eval_count", "eval_count")
                if isinstance(data.get(k), int)
            }
            return LLMResponse(
                content=str(message.get("content") or ""),
                finish_reason=str(data.get("done_reason") or "stop"),
                usage=usage,
                model=str(data.get("model") or self._model),
            )

        raise last_error or OllamaError("Ollama failed after all retries")

    async def generate(self, messages: list[ChatMessage], sampling: SamplingParams) -> str:
        """Generate the interviewer's reply text."""
        response = await self.chat(messages, sampling)
        logger.debug(f"Ollama reply length: {len(response.content)} chars")
        return response.content
