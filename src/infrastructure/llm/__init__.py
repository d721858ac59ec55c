"""
LLM Client Infrastructure
==========================

Wrapper for the Groq chat API providing a clean interface for LLM operations.

Groq is OpenAI-compatible, so the official openai SDK is used with a
custom base URL. The application depends on ILLMClient, not on the SDK.
"""

import time
from abc import ABC, abstractmethod
from typing import List, Optional

from openai import AsyncOpenAI

from src.config import settings
from src.core import ConfigurationException, LLMException
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class ChatCompletionResult:
    """Result of a chat completion."""

    def __init__(
        self,
        content: str,
        model: str,
        prompt_tokens: int,
        completion_tokens: int,
        latency_ms: int
    ):
        self.content = content
        self.model = model
        self.prompt_tokens = prompt_tokens
        self.completion_tokens = completion_tokens
        self.total_tokens = prompt_tokens + completion_tokens
        self.latency_ms = latency_ms


class ILLMClient(ABC):
    """
    Interface for LLM client operations.

    Following Interface Segregation Principle - only methods
    actually needed by the application are defined.
    """

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 1000,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        """Generate chat completion."""


class GroqLLMClient(ILLMClient):
    """
    Groq client implementation for Llama models.

    Groq is OpenAI-compatible with ultra-fast inference.
    """

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None):
        self._api_key = api_key or settings.groq_api_key
        if not self._api_key:
            raise ConfigurationException("Groq API key not configured")

        self._client = AsyncOpenAI(
            api_key=self._api_key,
            base_url=base_url or settings.groq_base_url,
        )
        self._model = settings.llm_model

    @property
    def model(self) -> str:
        return self._model

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 1000,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        """
        Generate chat completion using Groq Llama models.

        Args:
            messages: List of message dicts with 'role' and 'content'
            temperature: Sampling temperature (0-1)
            max_tokens: Maximum tokens to generate
            operation: Operation name for logging

        Returns:
            ChatCompletionResult with generated text

        Raises:
            LLMException: If completion fails or returns no content
        """
        start_time = time.perf_counter()

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens
            )
        except Exception as e:
            raise LLMException(f"Chat completion failed: {str(e)}")

        latency_ms = int((time.perf_counter() - start_time) * 1000)

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise LLMException("Chat completion returned no content")

        usage = response.usage
        result = ChatCompletionResult(
            content=content,
            model=response.model or self._model,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            latency_ms=latency_ms
        )

        logger.info(
            "LLM completion finished",
            extra={
                "operation": operation,
                "model": result.model,
                "prompt_tokens": result.prompt_tokens,
                "completion_tokens": result.completion_tokens,
                "latency_ms": latency_ms,
            }
        )
        return result


def create_llm_client() -> Optional[ILLMClient]:
    """
    Build the configured LLM client.

    Returns None when mock mode is on or no API key is set; callers then
    use their deterministic fallback.
    """
    if settings.mock_llm or not settings.groq_api_key:
        return None
    return GroqLLMClient()
